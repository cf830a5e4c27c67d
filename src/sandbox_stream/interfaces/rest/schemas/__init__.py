"""REST API 模式"""
