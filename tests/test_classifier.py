"""Unit tests for expression classification."""

import unittest

from calcgraph_pkg.classifier import classify, first_invalid_character, validation_charset
from calcgraph_pkg.types import CalculatorType, ExpressionType


class TestClassify(unittest.TestCase):
    def test_equation(self):
        self.assertEqual(classify("x + 1 = 3"), ExpressionType.EQUATION)

    def test_equation_checked_before_scientific(self):
        self.assertEqual(classify("sin(x) = 0"), ExpressionType.EQUATION)

    def test_scientific_by_name(self):
        self.assertEqual(classify("sin(x)"), ExpressionType.SCIENTIFIC)
        self.assertEqual(classify("2 * sqrt(2)"), ExpressionType.SCIENTIFIC)

    def test_scientific_by_mode(self):
        self.assertEqual(
            classify("2 + 2", CalculatorType.SCIENTIFIC), ExpressionType.SCIENTIFIC
        )

    def test_matrix(self):
        self.assertEqual(classify("[1, 2]"), ExpressionType.MATRIX)

    def test_function_shape(self):
        self.assertEqual(classify("f(2)"), ExpressionType.FUNCTION)

    def test_function_shape_checked_before_matrix(self):
        self.assertEqual(classify("f(x)+[1]"), ExpressionType.FUNCTION)

    def test_arithmetic(self):
        self.assertEqual(classify("2 + 2"), ExpressionType.ARITHMETIC)
        self.assertEqual(classify("x^2 - 1"), ExpressionType.ARITHMETIC)


class TestValidationCharset(unittest.TestCase):
    def test_relational_characters_only_for_equations(self):
        self.assertIn("=", validation_charset(ExpressionType.EQUATION))
        self.assertNotIn("=", validation_charset(ExpressionType.ARITHMETIC))

    def test_brackets_only_for_matrices(self):
        self.assertIn("[", validation_charset(ExpressionType.MATRIX))
        self.assertNotIn("[", validation_charset(ExpressionType.SCIENTIFIC))

    def test_first_invalid_character(self):
        self.assertEqual(first_invalid_character("2 + $", ExpressionType.ARITHMETIC), 4)
        self.assertIsNone(first_invalid_character("x = 1", ExpressionType.EQUATION))
        self.assertEqual(first_invalid_character("x = 1", ExpressionType.ARITHMETIC), 2)
        self.assertIsNone(first_invalid_character("2*π + φ", ExpressionType.ARITHMETIC))


if __name__ == "__main__":
    unittest.main()
