"""共享模块"""
