"""База данных"""
