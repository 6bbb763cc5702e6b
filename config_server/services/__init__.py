"""
Config Server Services

- repository.py - Directory-backed environment repository
"""
