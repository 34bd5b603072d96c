"""核心模块。"""
