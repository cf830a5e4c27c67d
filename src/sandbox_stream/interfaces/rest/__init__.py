"""REST 接口"""
