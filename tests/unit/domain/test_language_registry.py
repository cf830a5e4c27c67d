"""
语言注册表单元测试

测试语言解析、执行配置完整性与代码传递方式。
"""
import base64
import shlex

import pytest

from sandbox_stream.domain.services.language_registry import (
    COMPILATION_ERROR_MARKER,
    DEFAULT_PROFILES,
    RUNTIME_ERROR_MARKER,
    LanguageRegistry,
)
from sandbox_stream.domain.value_objects.execution_profile import (
    CODE_ENV_VAR,
    ExecutionProfile,
    Language,
)
from sandbox_stream.shared.errors.domain import InvalidRequestError, UnsupportedLanguageError


class TestLanguageRegistry:
    """语言注册表测试"""

    @pytest.fixture
    def registry(self):
        return LanguageRegistry()

    @pytest.mark.parametrize("language", ["python", "javascript", "c", "cpp", "html"])
    def test_resolve_supported_language(self, registry, language):
        """测试解析支持的语言"""
        profile = registry.resolve(language)

        assert profile.language.value == language
        assert profile.timeout_ms > 0
        assert profile.image

    def test_resolve_unknown_language(self, registry):
        """测试不支持的语言列出所有可用语言"""
        with pytest.raises(UnsupportedLanguageError) as exc_info:
            registry.resolve("ruby")

        message = exc_info.value.message
        assert "ruby" in message
        for language in ("python", "javascript", "c", "cpp", "html"):
            assert language in message

    def test_unsupported_language_is_invalid_request(self, registry):
        """测试不支持的语言属于无效请求"""
        with pytest.raises(InvalidRequestError):
            registry.resolve("")

    def test_supported_languages(self, registry):
        """测试支持的语言列表"""
        assert registry.supported_languages == ["python", "javascript", "c", "cpp", "html"]
        assert [profile.language for profile in registry] == list(Language)

    def test_missing_profile_rejected(self):
        """测试缺少执行配置时构造失败"""
        profiles = dict(DEFAULT_PROFILES)
        del profiles[Language.CPP]

        with pytest.raises(ValueError, match="cpp"):
            LanguageRegistry(profiles)

    def test_mismatched_profile_rejected(self):
        """测试执行配置与语言不一致时构造失败"""
        profiles = dict(DEFAULT_PROFILES)
        profiles[Language.C] = DEFAULT_PROFILES[Language.PYTHON]

        with pytest.raises(ValueError):
            LanguageRegistry(profiles)

    def test_timeout_override(self, registry):
        """测试统一超时覆盖"""
        overridden = registry.with_timeout_override(250)

        assert all(profile.timeout_ms == 250 for profile in overridden)
        assert registry.resolve("python").timeout_ms == 5000

    def test_timeout_override_none_returns_same_registry(self, registry):
        """测试未配置覆盖时返回原注册表"""
        assert registry.with_timeout_override(None) is registry


class TestExecutionProfile:
    """执行配置测试"""

    def test_command_does_not_contain_code(self):
        """测试用户代码不会出现在命令行中"""
        code = "print('$(rm -rf /)')"
        for profile in DEFAULT_PROFILES.values():
            env = profile.build_env(code)
            assert code not in " ".join(profile.command)
            assert profile.command[:2] == ["sh", "-c"]
            assert f"${CODE_ENV_VAR}" in profile.script
            assert set(env) == {CODE_ENV_VAR}

    def test_build_env_encodes_code(self):
        """测试代码经 base64 编码后传入"""
        profile = DEFAULT_PROFILES[Language.PYTHON]
        code = 'print("héllo")\nprint(1 + 1)\n'

        env = profile.build_env(code)

        assert base64.b64decode(env[CODE_ENV_VAR]).decode("utf-8") == code

    def test_script_is_valid_shell(self):
        """测试脚本可被 shell 词法解析"""
        for profile in DEFAULT_PROFILES.values():
            assert shlex.split(profile.script)

    def test_compiled_profiles_separate_compile_and_runtime_errors(self):
        """测试编译型语言区分编译错误与运行错误"""
        for language in (Language.C, Language.CPP):
            profile = DEFAULT_PROFILES[language]
            assert profile.compiled is True
            assert COMPILATION_ERROR_MARKER in profile.script
            assert RUNTIME_ERROR_MARKER in profile.script
            assert profile.source_path in profile.script

    def test_html_profile_explains_it_cannot_run(self):
        """测试 HTML 不可执行"""
        assert "HTML cannot be executed directly" in DEFAULT_PROFILES[Language.HTML].script

    def test_invalid_timeout(self):
        """测试无效超时时间"""
        with pytest.raises(ValueError):
            DEFAULT_PROFILES[Language.PYTHON].with_timeout(0)

    def test_script_must_read_code_from_env(self):
        """测试脚本必须从环境变量读取代码"""
        with pytest.raises(ValueError):
            ExecutionProfile(
                language=Language.PYTHON,
                image="python:3.11-slim",
                script="python -c 'print(1)'",
                timeout_ms=1000,
                source_path="/tmp/main.py",
            )

    def test_timeout_seconds(self):
        """测试超时秒数"""
        assert DEFAULT_PROFILES[Language.PYTHON].timeout_seconds == 5.0
