# vim: set noexpandtab: -*- indent-tabs-mode: t -*-
"""
callscope: call classification, static call graphs and type-aware rewrites
for Go-style sources.

Pipeline: `parser` (lark front end) -> `checker` (type oracle) ->
`selectors` / `classifier` -> `callgraph` / `rewrite`. The CLI entrypoint is
`callscope.driver:main`.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
