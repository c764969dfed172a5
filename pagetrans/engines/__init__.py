# pagetrans/engines/__init__.py
"""翻译引擎插件包。每个模块中继承 BaseTranslationEngine 的类都会被自动注册。"""
