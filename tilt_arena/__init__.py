"""
Tilt Arena Package
==================

A small real-time particle kernel: balls in a rectangular arena, pushed
around by a tilt vector and advanced once per rendered frame.

- sim_core: the simulation itself (integration, contacts, containment)

Default parameters live in arena_config.yaml next to this file.
"""
