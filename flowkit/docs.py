"""`flowkit` invariants and boundaries.

This module exists to make repository-wide refactors and boundary tests explicit.

Generic invariants:

1) `flowkit` must not import `integration_editor.*`.
2) `flowkit` provides the integration document model, the step-kind catalog type and
   the flow editing state machine (`CurrentFlow`) with its event bus and task queue.
3) `flowkit` does not define project conventions like:
   - which concrete step kinds exist and when they are visible
   - where integrations are stored and how the store is configured
   - how the editor is configured or how its logs are written

Project code injects those through the catalog, store and logger handed to
`CurrentFlow`.
"""
