"""Core (UI-free) logic: settings, capability probe, command gateway and engine."""
