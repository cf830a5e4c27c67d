"""API 路由包"""
