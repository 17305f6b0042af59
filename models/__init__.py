
"""
models/__init__.py
------------------
Local model backends. Submodules are imported on demand because each pulls in
a heavy runtime (sentence-transformers, transformers).
"""
