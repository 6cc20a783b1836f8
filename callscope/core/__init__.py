"""
callscope.core: shared spans, diagnostics, errors and the type table.

Modules:
  - span: source spans (offsets + line/column)
  - diagnostics: Diagnostic record collected by every pass
  - errors: exception hierarchy for fatal conditions
  - types_core: TypeId/TypeTable primitives
"""

__all__ = [
	"span",
	"diagnostics",
	"errors",
	"types_core",
]
