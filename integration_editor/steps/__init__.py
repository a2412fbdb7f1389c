"""Concrete step kinds offered by the editor and the catalog built from them."""

from integration_editor.steps.registry import build_step_catalog, get_step_catalog

__all__ = ["build_step_catalog", "get_step_catalog"]
