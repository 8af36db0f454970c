from __future__ import annotations

import tkinter as tk
from tkinter import ttk


BG_COLOR = "#2b2b2b"
FG_COLOR = "#e0e0e0"
ACCENT_COLOR = "#3d6fb6"
ERROR_COLOR = "#e06c75"
MUTED_COLOR = "#777777"


def apply_dark_theme(root: tk.Misc) -> tuple[str, str]:
    """Dark "clam" ttk theme; returns (background, foreground)."""

    style = ttk.Style()
    style.theme_use("clam")

    try:
        root.configure(bg=BG_COLOR)  # type: ignore[call-arg]
    except tk.TclError:
        pass

    style.configure("TFrame", background=BG_COLOR)
    style.configure("TLabel", background=BG_COLOR, foreground=FG_COLOR)
    style.configure("TLabelframe", background=BG_COLOR, foreground=FG_COLOR)
    style.configure("TLabelframe.Label", background=BG_COLOR, foreground=FG_COLOR)
    style.configure("TRadiobutton", background=BG_COLOR, foreground=FG_COLOR)
    style.configure("TScale", background=BG_COLOR, troughcolor="#404040")
    style.configure("TButton", background="#404040", foreground=FG_COLOR)
    style.map("TButton", background=[("active", "#505050"), ("disabled", "#333333")])

    # Active mode / preset buttons.
    style.configure("Active.TButton", background=ACCENT_COLOR, foreground="#ffffff")
    style.map("Active.TButton", background=[("active", "#4a7fc9")])

    style.configure("Error.TLabel", background=BG_COLOR, foreground=ERROR_COLOR)
    style.configure("Muted.TLabel", background=BG_COLOR, foreground=MUTED_COLOR)
    style.configure("Header.TLabel", background=BG_COLOR, foreground=FG_COLOR, font=("TkDefaultFont", 14, "bold"))

    style.map(
        "TRadiobutton",
        background=[("disabled", BG_COLOR), ("active", BG_COLOR)],
        foreground=[("disabled", MUTED_COLOR), ("!disabled", FG_COLOR)],
    )

    return BG_COLOR, FG_COLOR
