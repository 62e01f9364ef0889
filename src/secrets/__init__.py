# src/secrets/__init__.py — v1
