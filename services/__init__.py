"""Сервисы"""
