"""calcgraph package: tokenizer, parser, evaluator, graph sampling and analysis, and CLI."""

__all__ = [
    "config",
    "tokenizer",
    "parser",
    "evaluator",
    "classifier",
    "calculus",
    "solver",
    "service",
    "graph",
    "sampler",
    "analysis",
    "renderer",
    "cli",
    "types",
    "api",
    "logging_config",
]

# Public API exports

__api_exports__ = [
    "evaluate",
    "validate_expression",
    "simplify_expr",
    "solve_equation",
    "diff",
    "integrate_expr",
    "plot",
    "special_points",
]
