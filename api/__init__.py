"""HTTP API аукциона"""
