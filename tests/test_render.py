import unittest
import sys
import os
from unittest.mock import MagicMock

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../')))

from smartform import create_form, FieldType, Schema
from smartform.exceptions import SchemaError
from smartform.form.render import ChoiceRenderer, FieldRenderer, FieldView, RenderContext


def context(value=None, error=""):
    return RenderContext(value=value, error=error, on_change=MagicMock(), on_blur=MagicMock())


class TestFieldRenderers(unittest.TestCase):
    def build(self):
        return create_form({
            "firstName": {"value": "", "label": "First name", "className": "wide"},
            "email": {"type": "email", "value": "", "validation": {"required": True, "email": True}},
            "agree": {"type": "checkbox"},
            "state": {"type": "select", "options": ["New York", "Texas"]},
            "plan": {"type": "radio", "options": ["Free", "Pro"], "value": "Free"},
            "bio": {"type": "textarea", "value": "", "rows": 6},
            "avatar": {"type": "file"},
            "colour": {"type": "custom", "value": "red"},
        })

    def test_views_follow_declaration_order(self):
        view = self.build().view()
        self.assertEqual(view.names(), ["firstName", "email", "agree", "state", "plan", "bio", "avatar", "colour"])

    def test_input_types(self):
        view = self.build().view()
        self.assertEqual(view.field("firstName").input_type, "text")
        self.assertEqual(view.field("email").input_type, "email")
        self.assertEqual(view.field("colour").input_type, "text")
        self.assertEqual(view.field("bio").input_type, "textarea")
        self.assertEqual(view.field("avatar").input_type, "file")

    def test_presentation_defaults_and_hints(self):
        first = self.build().view().field("firstName")
        self.assertEqual(first.label, "First name")
        self.assertEqual(first.placeholder, "FIRSTNAME")
        self.assertEqual(first.hints, {"className": "wide"})

    def test_checkbox(self):
        form = self.build()
        self.assertIs(form.view().field("agree").checked, False)
        form.handle_change("agree", True)
        self.assertIs(form.view().field("agree").checked, True)

    def test_choices(self):
        view = self.build().view()
        self.assertEqual(view.field("state").options, ("New York", "Texas"))
        self.assertEqual(view.field("state").value, "")
        self.assertEqual(view.field("plan").value, "Free")

    def test_choices_keep_non_string_options(self):
        form = create_form({"rating": {"type": "radio", "options": [1, 2, 3]}})
        form.handle_change("rating", 3)
        rating = form.view().field("rating")
        self.assertEqual((rating.options, rating.value), ((1, 2, 3), 3))

    def test_textarea_size(self):
        bio = self.build().view().field("bio")
        self.assertEqual((bio.rows, bio.cols), (6, 50))

    def test_file_never_echoes_value(self):
        form = self.build()
        form.handle_change("avatar", ["photo.png"])
        self.assertIsNone(form.view().field("avatar").value)
        self.assertEqual(form.values["avatar"], ["photo.png"])

    def test_accessibility_attributes(self):
        form = self.build()
        email = form.view().field("email")
        self.assertEqual(email.attrs["aria-invalid"], "false")
        self.assertEqual(email.attrs["aria-required"], "true")
        self.assertNotIn("aria-describedby", email.attrs)

        form.handle_change("email", "nobody")
        email = form.view().field("email")
        self.assertTrue(email.show_error)
        self.assertEqual(email.attrs["aria-invalid"], "true")
        self.assertEqual(email.attrs["aria-describedby"], "email-error")

    def test_view_handlers_are_bound_to_the_form(self):
        form = self.build()
        form.view().field("firstName").on_change("Ada")
        self.assertEqual(form.values["firstName"], "Ada")

    def test_choice_renderer_requires_options(self):
        field = Schema().field("size").of_type(FieldType.SELECT)
        with self.assertRaises(SchemaError):
            ChoiceRenderer().render(field, context())

    def test_renderer_override(self):
        class SwatchRenderer(FieldRenderer):
            def render(self, field, ctx):
                return self.base_view(field, ctx, "color", value=ctx.value or "#000000")

        form = create_form({"colour": {"type": "custom"}}, renderers={FieldType.CUSTOM: SwatchRenderer()})
        colour = form.view().field("colour")
        self.assertIsInstance(colour, FieldView)
        self.assertEqual((colour.input_type, colour.value), ("color", "#000000"))


class TestFormView(unittest.TestCase):
    def test_error_summary_skips_hidden_fields(self):
        form = create_form({
            "firstName": {"value": "", "validation": {"minLength": 2}},
            "lastName": {"value": "", "validation": {"minLength": 2},
                         "showWhen": lambda s: s["firstName"] == "John"},
        })
        form.handle_change("lastName", "x")
        form.handle_change("firstName", "J")
        view = form.view()
        self.assertEqual(view.error_summary, ["Field must be at least 2 characters long."])
        self.assertEqual(form.errors["lastName"], "Field must be at least 2 characters long.")

    def test_error_summary_can_be_hidden(self):
        form = create_form({"a": {"value": "", "validation": {"required": True}}}, show_error_summary=False)
        form.handle_change("a", "")
        self.assertEqual(form.view().error_summary, [])

    def test_submit_button(self):
        form = create_form({"a": ""}, submit_button_text="Send")
        button = form.view().submit_button
        self.assertEqual((button.text, button.disabled), ("Send", False))
        self.assertIsNone(create_form({"a": ""}, hide_submit_button=True).view().submit_button)

    def test_submission_error_leads_the_summary(self):
        form = create_form({"a": {"value": "", "validation": {"required": True}}},
                           on_submit=MagicMock(side_effect=RuntimeError("Rejected")))
        form.handle_change("a", "")
        with self.assertLogs("smartform.form.form", level="WARNING"):
            form.handle_submit()
        view = form.view()
        self.assertEqual(view.submission_error, "Rejected")
        self.assertEqual(view.error_summary, ["Rejected", "Field is required."])

    def test_subscribed_view_rerenders(self):
        form = create_form({"a": ""})
        views = []
        form.subscribe(lambda f: views.append(f.view()))
        form.handle_change("a", "hello")
        self.assertEqual(views[-1].field("a").value, "hello")


if __name__ == '__main__':
    unittest.main()
