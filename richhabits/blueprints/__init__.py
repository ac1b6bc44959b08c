"""
Rich Habits OS
Blueprint registry.

Each module defines one ``<name>_bp`` blueprint; ``create_app`` registers
them all. Shared request helpers live in ``richhabits.utils.helpers``.
"""
