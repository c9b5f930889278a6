# src/testadapter/cli/__init__.py
