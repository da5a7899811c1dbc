"""Configuration: settings, per-scope resolution and logging."""
