"""Tkinter control panel (presentation only)."""
