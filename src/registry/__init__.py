# src/registry/__init__.py — v1
