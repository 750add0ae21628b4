"""
Сквозная инфраструктура: конфигурация и логирование.
"""
