# src/identity/__init__.py — v1
