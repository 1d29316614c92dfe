"""Test error codes returned by various functions."""

import unittest

from calcgraph_pkg.parser import parse_ast
from calcgraph_pkg.renderer import GraphRenderer
from calcgraph_pkg.service import CalculatorService
from calcgraph_pkg.tokenizer import tokenize
from calcgraph_pkg.types import (
    CalculationError,
    ExpressionParseError,
    OperationCancelledError,
    RenderError,
    UnsupportedFunctionError,
    UnsupportedOperationError,
    ValidationError,
)


class TestErrorCodes(unittest.TestCase):
    """Test that functions raise errors carrying the appropriate code."""

    def test_too_long_error_code(self):
        """Test that overly long input returns TOO_LONG error code."""
        try:
            tokenize("x" * 1001)
            self.fail("Should have raised ExpressionParseError")
        except ExpressionParseError as e:
            self.assertEqual(e.code, "TOO_LONG", f"Expected TOO_LONG, got {e.code}")
            self.assertIn("too long", str(e).lower())

    def test_empty_input_error_code(self):
        with self.assertRaises(ExpressionParseError) as ctx:
            parse_ast("")
        self.assertEqual(ctx.exception.code, "EMPTY_INPUT")

    def test_parse_error_default_code(self):
        with self.assertRaises(ExpressionParseError) as ctx:
            parse_ast("1 +")
        self.assertEqual(ctx.exception.code, "PARSE_ERROR")
        self.assertIsNotNone(ctx.exception.position)

    def test_unsupported_operation_code(self):
        service = CalculatorService()
        with self.assertRaises(UnsupportedOperationError) as ctx:
            service.solve(service.parse_expression("x + 1"))
        self.assertEqual(ctx.exception.code, "UNSUPPORTED_OPERATION")
        self.assertEqual(ctx.exception.operation, "solve")

    def test_calculus_operation_name(self):
        service = CalculatorService()
        with self.assertRaises(UnsupportedOperationError) as ctx:
            service.derivative(service.parse_expression("x*sin(x)"))
        self.assertEqual(ctx.exception.operation, "derivative")

    def test_render_error_code(self):
        with self.assertRaises(RenderError) as ctx:
            GraphRenderer().render_2d("sqrt(-1)")
        self.assertEqual(ctx.exception.code, "RENDER_ERROR")

    def test_cancelled_is_render_error(self):
        error = OperationCancelledError()
        self.assertIsInstance(error, RenderError)
        self.assertEqual(error.code, "CANCELLED")

    def test_unsupported_function_code(self):
        error = UnsupportedFunctionError("no", "4d")
        self.assertEqual(error.code, "UNSUPPORTED_FUNCTION")
        self.assertEqual(error.function_type, "4d")

    def test_validation_error_default_code(self):
        self.assertEqual(ValidationError("bad").code, "VALIDATION_ERROR")

    def test_calculation_error_default_code(self):
        error = CalculationError("bad")
        self.assertEqual(error.code, "NUMERIC_ERROR")
        self.assertIsNone(error.expression)
        self.assertEqual(str(error), "bad")


if __name__ == "__main__":
    unittest.main()
