"""Application-level helpers for the integration editor.

- `integration_editor.framework.config`: `EditorConfig` parsed from the YAML config
- `integration_editor.framework.file_store`: JSON-file persistence backend

For the reusable model, catalog and state machine, use `flowkit`.
"""
