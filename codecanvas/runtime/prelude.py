"""
Helper library installed into the interpreter's global namespace.

Generated code is told about these helpers by the generation prompt:
``show_plot()`` returns the current figure as an image payload string,
``df_to_html(df)`` returns a DataFrame as an HTML table, and the sympy
helpers work on textual expressions.
"""

from __future__ import annotations

import base64
import io
import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from .interpreter import EmbeddedInterpreter

logger = logging.getLogger(__name__)

PLOT_MARKER = "image/png;base64,"

# Capability package -> name it is exposed under
MODULE_ALIASES = {
    "numpy": "np",
    "pandas": "pd",
    "scipy": "scipy",
    "sympy": "sympy",
}


def show_plot() -> str:
    """Serialize the current matplotlib figure and clear all figures."""
    import matplotlib.pyplot as plt

    buf = io.BytesIO()
    plt.savefig(buf, format="png", dpi=150, bbox_inches="tight", facecolor="white")
    plt.close("all")
    return PLOT_MARKER + base64.b64encode(buf.getvalue()).decode("ascii")


def df_to_html(df: Any) -> str:
    """Serialize a DataFrame into an HTML table styled by the host scaffold."""
    return df.to_html(classes="generated-table", border=0, escape=False, index=False)


def _parse_equation(eq: str) -> Any:
    from sympy import sympify

    if eq.count("=") == 1:
        lhs, rhs = eq.split("=")
        return sympify(lhs) - sympify(rhs)
    return sympify(eq)


def solve_equation(eq: str, var: str = "x") -> list:
    """Solve ``eq`` for ``var``. ``"x**2 - 4 = 0"`` and ``"x**2 - 4"`` both work."""
    from sympy import solve, symbols

    return solve(_parse_equation(eq), symbols(var))


def integrate_function(func: str, var: str = "x", a: Any = None, b: Any = None) -> Any:
    """Indefinite integral of ``func``, or the definite one when both bounds are given."""
    from sympy import integrate, symbols, sympify

    x = symbols(var)
    expr = sympify(func)
    if a is not None and b is not None:
        return integrate(expr, (x, a, b))
    return integrate(expr, x)


def derivative_function(func: str, var: str = "x", order: int = 1) -> Any:
    from sympy import diff, symbols, sympify

    return diff(sympify(func), symbols(var), order)


HELPERS = {
    "show_plot": show_plot,
    "df_to_html": df_to_html,
    "solve_equation": solve_equation,
    "integrate_function": integrate_function,
    "derivative_function": derivative_function,
}


def install_prelude(interpreter: EmbeddedInterpreter, capabilities: Iterable[str]) -> None:
    """Expose loaded capability modules and the helper functions."""
    loaded = set(capabilities)
    for package, alias in MODULE_ALIASES.items():
        if package in loaded:
            interpreter.inject(alias, interpreter.packages[package])

    if "matplotlib" in loaded:
        matplotlib = interpreter.packages["matplotlib"]
        matplotlib.use("Agg")
        interpreter.inject("matplotlib", matplotlib)
        interpreter.inject("plt", interpreter.load_package("matplotlib.pyplot"))

    for name, helper in HELPERS.items():
        interpreter.inject(name, helper)

    logger.debug(f"Prelude installed with capabilities: {', '.join(sorted(loaded)) or 'none'}")
