"""test_control_codes.py - masking and restoring RPG Maker escape codes"""

import unittest

from autotrans.control_codes import (
    PLACEHOLDER, ControlCode, count_placeholders, extract_codes, mask, restore,
)


class TestExtractCodes(unittest.TestCase):

    def test_actor_name_code_position(self):
        self.assertEqual(extract_codes("Hello \\N[1]"), [ControlCode("\\N[1]", 6)])

    def test_codes_in_source_order(self):
        text = "\\C[2]赤\\C[0]と\\V[10]\\!"
        codes = extract_codes(text)
        self.assertEqual([c.code for c in codes], ["\\C[2]", "\\C[0]", "\\V[10]", "\\!"])
        self.assertEqual([c.position for c in codes], [0, 6, 12, 18])

    def test_lowercase_bracket_code_kept_verbatim(self):
        codes = extract_codes("\\c[3]text\\n[2]")
        self.assertEqual([c.code for c in codes], ["\\c[3]", "\\n[2]"])

    def test_single_character_escapes(self):
        codes = extract_codes("a\\.b\\|c\\>d\\<e\\^f\\$g\\{h\\}")
        self.assertEqual(len(codes), 8)

    def test_bare_letter_escape(self):
        self.assertEqual([c.code for c in extract_codes("\\G払う")], ["\\G"])

    def test_multi_letter_parameterised(self):
        self.assertEqual([c.code for c in extract_codes("\\FS[28]大\\PX[4]")],
                         ["\\FS[28]", "\\PX[4]"])

    def test_no_codes(self):
        self.assertEqual(extract_codes("ただのテキスト"), [])
        self.assertEqual(extract_codes(""), [])


class TestMask(unittest.TestCase):

    def test_example_scenario(self):
        self.assertEqual(mask("Hello \\N[1]"), "Hello {{CODE}}")

    def test_same_placeholder_for_every_code(self):
        masked = mask("\\C[2]A\\C[0]B\\I[64]")
        self.assertEqual(masked, "{{CODE}}A{{CODE}}B{{CODE}}")
        self.assertEqual(count_placeholders(masked), 3)

    def test_unchanged_without_codes(self):
        self.assertEqual(mask("plain text"), "plain text")


class TestRestore(unittest.TestCase):

    def test_example_scenario(self):
        codes = extract_codes("Hello \\N[1]")
        self.assertEqual(restore("Xin chào {{CODE}}", codes), "Xin chào \\N[1]")

    def test_symmetry(self):
        for text in ("\\C[2]赤い\\C[0]剣", "\\N[1]：\\{やあ！\\}", "\\V[3]G\\$", "x"):
            with self.subTest(text=text):
                self.assertEqual(restore(mask(text), extract_codes(text)), text)

    def test_codes_follow_placeholder_order_after_reordering(self):
        codes = extract_codes("\\C[2]A\\C[0]")
        self.assertEqual(restore("B{{CODE}} C{{CODE}}", codes), "B\\C[2] C\\C[0]")

    def test_fewer_placeholders_drop_trailing_codes(self):
        codes = extract_codes("\\C[2]A\\C[0]B\\!")
        self.assertEqual(restore("{{CODE}}xy", codes), "\\C[2]xy")

    def test_extra_placeholders_left_verbatim(self):
        codes = extract_codes("\\N[1]")
        self.assertEqual(restore("{{CODE}} and {{CODE}}", codes),
                         "\\N[1] and " + PLACEHOLDER)

    def test_no_codes_returns_text(self):
        self.assertEqual(restore("anything {{CODE}}", []), "anything {{CODE}}")


if __name__ == "__main__":
    unittest.main()
