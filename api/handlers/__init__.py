"""HTTP обработчики"""
