# flycargo/bot/__init__.py
"""
Telegram бот чата модераторов.
"""
