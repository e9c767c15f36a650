import unittest
import os
import sys

# Add project root to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.grading import grade_answer, question_points, effective_passing_score, is_passed
from core.config import settings


class TestGrading(unittest.TestCase):
    def test_unset_points_count_as_one(self):
        self.assertEqual(question_points(None), 1)
        self.assertEqual(question_points(5), 5)
        self.assertEqual(question_points(0), 0)

    def test_correct_option_earns_question_points(self):
        graded = grade_answer(question_id=1, points=3, selected_option_id=10, option_is_correct=True)
        self.assertTrue(graded.is_correct)
        self.assertEqual(graded.points_earned, 3)
        self.assertEqual(graded.selected_option_id, 10)

    def test_correct_option_with_unset_points(self):
        graded = grade_answer(question_id=1, points=None, selected_option_id=10, option_is_correct=True)
        self.assertEqual(graded.points_earned, 1)

    def test_wrong_option_earns_nothing(self):
        graded = grade_answer(question_id=1, points=3, selected_option_id=11, option_is_correct=False)
        self.assertFalse(graded.is_correct)
        self.assertEqual(graded.points_earned, 0)

    def test_unknown_option_earns_nothing(self):
        # option_is_correct is None when the option is missing or belongs elsewhere
        graded = grade_answer(question_id=1, points=3, selected_option_id=999, option_is_correct=None)
        self.assertFalse(graded.is_correct)
        self.assertEqual(graded.points_earned, 0)

    def test_essay_is_stored_ungraded(self):
        graded = grade_answer(question_id=2, points=5, answer_text="x = 4")
        self.assertFalse(graded.is_correct)
        self.assertEqual(graded.points_earned, 0)
        self.assertEqual(graded.answer_text, "x = 4")
        self.assertIsNone(graded.selected_option_id)

    def test_correctness_without_selection_is_ignored(self):
        graded = grade_answer(question_id=2, points=5, option_is_correct=True)
        self.assertFalse(graded.is_correct)

    def test_passing_score_defaults(self):
        self.assertEqual(effective_passing_score(None), settings.DEFAULT_PASSING_SCORE)
        self.assertEqual(effective_passing_score(0), 0)
        self.assertEqual(effective_passing_score(7), 7)

    def test_pass_is_raw_point_comparison(self):
        # 2 of 2 points is not a pass against the default threshold of 60
        self.assertFalse(is_passed(2, None))
        self.assertTrue(is_passed(1, 1))
        self.assertFalse(is_passed(1, 2))
        self.assertTrue(is_passed(0, 0))


if __name__ == '__main__':
    unittest.main()
