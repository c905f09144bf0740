# flycargo/core/__init__.py
"""
Доменный слой: модели, репозитории регионов, машины состояний и сервисы.
"""
