"""Core cross-cutting types shared by services and blueprints."""
