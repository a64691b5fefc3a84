"""Mind-map editor: graph model, layout, sizing, store, viewport and interaction."""

__version__ = "0.1.0"
