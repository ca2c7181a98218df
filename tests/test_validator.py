import asyncio
import math
import unittest
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from smartform.form.schema import Schema, ValidationRules
from smartform.form.validator import Validator, parse_float, validate


def make_field(**rules):
    field = Schema().field("value")
    if rules:
        field.rules_from(rules)
    return field


class TestParseFloat(unittest.TestCase):
    def test_leading_numeric_prefix(self):
        self.assertEqual(parse_float("25"), 25.0)
        self.assertEqual(parse_float("  -3.5kg"), -3.5)
        self.assertEqual(parse_float(".5"), 0.5)
        self.assertEqual(parse_float("1e3"), 1000.0)
        self.assertEqual(parse_float(7), 7.0)

    def test_unparseable_is_nan(self):
        for value in ("abc", "", None, True, []):
            self.assertTrue(math.isnan(parse_float(value)), value)


class TestRuleChecks(unittest.TestCase):
    def test_required_rejects_empty_values(self):
        for empty in ("", None, False, 0, []):
            self.assertEqual(Validator.required(empty, True), "Field is required.")
        self.assertIsNone(Validator.required("x", True))
        self.assertIsNone(Validator.required("", False))

    def test_min_length(self):
        rules = ValidationRules(min_length=3)
        self.assertEqual(Validator.check_rules(rules, "ab"), "Field must be at least 3 characters long.")
        self.assertIsNone(Validator.check_rules(rules, "abc"))

    def test_length_rules_ignore_values_without_length(self):
        self.assertIsNone(Validator.min_length(12, 3))
        self.assertIsNone(Validator.max_length(123456, 3))

    def test_max_length(self):
        self.assertEqual(Validator.max_length("abcdef", 5), "Field must not exceed 5 characters.")

    def test_min_and_max_messages_print_integers(self):
        rules = ValidationRules(min=18, max=99)
        self.assertEqual(Validator.check_rules(rules, "15"), "Value must be greater than or equal to 18.")
        self.assertEqual(Validator.check_rules(rules, "100"), "Value must be less than or equal to 99.")
        self.assertIsNone(Validator.check_rules(rules, "25"))
        self.assertEqual(Validator.min_value(1, 2.5), "Value must be greater than or equal to 2.5.")

    def test_zero_is_a_usable_bound(self):
        self.assertEqual(Validator.min_value("-1", 0), "Value must be greater than or equal to 0.")

    def test_non_numeric_passes_bounds_silently(self):
        rules = ValidationRules(min=18, max=99)
        self.assertIsNone(Validator.check_rules(rules, "abc"))

    def test_email_shape(self):
        self.assertEqual(Validator.email("nobody", True), "Field must be a valid email address.")
        self.assertEqual(Validator.email(None, True), "Field must be a valid email address.")
        self.assertIsNone(Validator.email("a@b", True))

    def test_regex_and_pattern_messages(self):
        rules = ValidationRules(regex="^[0-9]+$", regex_error="Digits only")
        self.assertEqual(Validator.check_rules(rules, "12a"), "Digits only")
        rules = ValidationRules(pattern="^x")
        self.assertEqual(Validator.check_rules(rules, "y"), "Invalid value.")

    def test_last_failing_rule_wins(self):
        # Empty input fails minLength and required; required is evaluated later.
        rules = ValidationRules(min_length=3, required=True)
        self.assertEqual(Validator.check_rules(rules, ""), "Field is required.")
        # "ab" fails minLength and pattern; pattern is evaluated last.
        rules = ValidationRules(min_length=3, pattern="^z", pattern_error="Must start with z")
        self.assertEqual(Validator.check_rules(rules, "ab"), "Must start with z")


class TestValidate(unittest.IsolatedAsyncioTestCase):
    async def test_required_with_empty_value(self):
        self.assertEqual(await validate(make_field(required=True), ""), "Field is required.")

    async def test_disabled_validation_returns_none(self):
        self.assertIsNone(await validate(make_field(required=True), "", disable_validation=True))

    async def test_no_rules_and_no_custom(self):
        self.assertIsNone(await validate(make_field(), "anything"))

    async def test_sync_custom_validator(self):
        field = make_field().custom(lambda v: "" if v == "ok" else "Not ok")
        self.assertEqual(await validate(field, "bad"), "Not ok")
        self.assertIsNone(await validate(field, "ok"))

    async def test_async_custom_validator(self):
        async def taken(value):
            await asyncio.sleep(0)
            return "Username is taken" if value == "admin" else None

        field = make_field().custom(taken)
        self.assertEqual(await validate(field, "admin"), "Username is taken")
        self.assertIsNone(await validate(field, "ada"))

    async def test_raised_error_becomes_message(self):
        async def broken(value):
            raise ValueError("Service unavailable")

        field = make_field().custom(broken)
        self.assertEqual(await validate(field, "x"), "Service unavailable")

    async def test_rules_xor_custom_skips_custom_when_rules_exist(self):
        calls = []

        def custom(value):
            calls.append(value)
            return "custom failed"

        field = make_field(min_length=1).custom(custom)
        self.assertIsNone(await validate(field, "abc"))
        self.assertEqual(calls, [])

    async def test_rules_then_custom_runs_custom_after_passing_rules(self):
        field = make_field(min_length=1).custom(lambda v: "custom failed").validate_with("rules-then-custom")
        self.assertEqual(await validate(field, "abc"), "custom failed")

    async def test_rules_then_custom_reports_rule_errors_first(self):
        field = make_field(min_length=5).custom(lambda v: "custom failed").validate_with("rules-then-custom")
        self.assertEqual(await validate(field, "abc"), "Field must be at least 5 characters long.")


if __name__ == '__main__':
    unittest.main()
