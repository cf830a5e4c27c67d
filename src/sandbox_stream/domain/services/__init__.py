"""领域服务模块"""
