"""Utilities package for the PLM BOM engine (config, constants, validation, CLI)."""
