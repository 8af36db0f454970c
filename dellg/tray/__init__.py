"""Tray icon, startup and application wiring.

Submodules are imported lazily; `dellg.tray.entrypoint:main` is the console
entry point.
"""
