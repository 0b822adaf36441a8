"""
Tests for basic arithmetic and expressions.

These tests verify fundamental functionality end to end:
- Arithmetic with the precedence table
- Comparisons producing 0.0 or 1.0
- Number literal forms
- Variables with no binding
"""

import pytest


class TestArithmetic:
    """Tests for arithmetic operators."""

    def test_addition(self, expect_value):
        expect_value("2 + 3", 5.0)

    def test_subtraction(self, expect_value):
        expect_value("10 - 4", 6.0)

    def test_multiplication(self, expect_value):
        expect_value("6 * 7", 42.0)

    def test_division(self, expect_value):
        expect_value("7 / 2", 3.5)

    def test_division_by_zero_is_infinite(self, expect_value):
        expect_value("1 / 0", float("inf"))


class TestPrecedence:
    """Tests for precedence and associativity."""

    def test_multiplication_first(self, expect_value):
        expect_value("1+2*3", 7.0)

    def test_parentheses(self, expect_value):
        expect_value("(1+2)*3", 9.0)

    def test_left_associative_subtraction(self, expect_value):
        expect_value("10-4-3", 3.0)

    def test_left_associative_division(self, expect_value):
        expect_value("64/4/2", 8.0)

    def test_comparison_of_sums(self, expect_value):
        expect_value("1+1 < 1+2", 1.0)


class TestComparison:
    """Tests for < and >."""

    def test_less_than_true(self, expect_value):
        expect_value("1 < 2", 1.0)

    def test_less_than_false(self, expect_value):
        expect_value("2 < 1", 0.0)

    def test_greater_than(self, expect_value):
        expect_value("3 > 2", 1.0)

    def test_equal_is_not_less(self, expect_value):
        expect_value("2 < 2", 0.0)


class TestLiterals:
    """Tests for number literal forms."""

    def test_fraction(self, expect_value):
        expect_value("0.25 * 4", 1.0)

    def test_leading_dot(self, expect_value):
        expect_value(".5 + .5", 1.0)

    def test_longest_prefix(self, expect_value):
        expect_value("1.2.3", 1.2)


class TestVariables:
    """Tests for variable references."""

    def test_unbound_name_is_zero(self, expect_value):
        expect_value("y + 1", 1.0)

    def test_comment_ignored(self, expect_value):
        expect_value("# a comment\n4 # another\n", 4.0)

    def test_last_expression_wins(self, expect_value):
        expect_value("1; 2; 3", 3.0)
