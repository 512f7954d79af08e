"""Compiler layer: turns a project of command schemas into an artifact.

Rules
-----
* Build time only; nothing here is bundled into artifacts.
* May import :mod:`schemacli.runtime`; never :mod:`schemacli.cli`.
* Malformed input raises :class:`~schemacli.exceptions.SchemaError`.
"""
