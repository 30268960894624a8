"""
跑呗餐厅扫码点餐后端
"""
__version__ = "1.0.0"
