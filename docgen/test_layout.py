from __future__ import annotations

import unittest

from docgen.layout import Run, column_widths, measure_width, plain_text, split_runs, wrap_runs, wrap_text


class TestWrapText(unittest.TestCase):
    def test_lines_fit_within_width(self) -> None:
        text = "The quick brown fox jumps over the lazy dog " * 12
        lines = list(wrap_text(text, "Helvetica", 10, 200))
        self.assertGreater(len(lines), 1)
        for line in lines:
            self.assertLessEqual(measure_width(line, "Helvetica", 10), 200)

    def test_wrapping_preserves_every_word_in_order(self) -> None:
        text = "alpha beta   gamma\tdelta epsilon zeta eta theta"
        lines = list(wrap_text(text, "Helvetica", 12, 80))
        self.assertEqual(" ".join(lines).split(), text.split())

    def test_overwide_word_sits_alone_untruncated(self) -> None:
        word = "Supercalifragilisticexpialidocious"
        lines = list(wrap_text(f"a {word} b", "Helvetica", 12, 50))
        self.assertEqual(lines, ["a", word, "b"])

    def test_empty_input_yields_nothing(self) -> None:
        self.assertEqual(list(wrap_text("", "Helvetica", 10, 100)), [])
        self.assertEqual(list(wrap_text("   \n ", "Helvetica", 10, 100)), [])


class TestStyledRuns(unittest.TestCase):
    def test_split_runs_marks_bold_segments(self) -> None:
        words = split_runs("Pay **now** please")
        self.assertEqual(words, [(Run("Pay"),), (Run("now", True),), (Run("please"),)])

    def test_touching_runs_stay_one_word(self) -> None:
        words = split_runs("**Total**: due")
        self.assertEqual(words[0], (Run("Total", True), Run(":")))
        self.assertEqual(len(words), 2)

    def test_wrap_runs_keeps_text_and_merges_styles(self) -> None:
        words = split_runs("one **two three** four five six seven")
        lines = list(wrap_runs(words, "Helvetica", "Helvetica-Bold", 10, 60))
        rebuilt = " ".join(plain_text(line) for line in lines)
        self.assertEqual(rebuilt.split(), "one two three four five six seven".split())
        for line in lines:
            for left, right in zip(line, line[1:]):
                self.assertNotEqual(left.bold, right.bold)


class TestColumnWidths(unittest.TestCase):
    def test_fixed_columns_kept_rest_shared(self) -> None:
        self.assertEqual(column_widths(500, 4, (None, 50, 80, 90)), [280, 50, 80, 90])
        self.assertEqual(column_widths(300, 3), [100, 100, 100])

    def test_no_columns(self) -> None:
        self.assertEqual(column_widths(300, 0), [])


if __name__ == "__main__":
    unittest.main()
