import unittest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.similarity import TOKEN_MODE_JACCARD, TOKEN_MODE_MIN, edit_similarity, token_overlap


class TestEditSimilarity(unittest.TestCase):
    def test_identical_strings_score_100(self):
        self.assertEqual(edit_similarity("colville", "colville"), 100)

    def test_distance_is_scaled_by_longest_string(self):
        # distance 3 over 7 characters
        self.assertEqual(edit_similarity("kitten", "sitting"), 57)

    def test_completely_different(self):
        self.assertEqual(edit_similarity("abc", "xyz"), 0)

    def test_range(self):
        pairs = [("colville", "colvile"), ("a", "abcdef"), ("spokane", "")]
        for a, b in pairs:
            score = edit_similarity(a, b)
            self.assertGreaterEqual(score, 0)
            self.assertLessEqual(score, 100)


class TestTokenOverlap(unittest.TestCase):
    def test_min_mode_scores_contained_name_as_full_match(self):
        self.assertEqual(token_overlap("colville", "colville spokane", mode=TOKEN_MODE_MIN), 1.0)

    def test_jaccard_mode_divides_by_union(self):
        self.assertEqual(token_overlap("colville", "colville spokane", mode=TOKEN_MODE_JACCARD), 0.5)

    def test_short_tokens_are_ignored(self):
        self.assertEqual(token_overlap("of an", "of an"), 0.0)
        self.assertEqual(token_overlap("physician notified of", "physician notified"), 1.0)

    def test_empty_token_set_scores_zero(self):
        self.assertEqual(token_overlap("", "colville"), 0.0)

    def test_symmetric(self):
        pairs = [
            ("physician notified timely", "physician was notified"),
            ("fall risk assessment", "assessment of fall risk on admission"),
            ("skin checks weekly", "wound care orders"),
        ]
        for mode in (TOKEN_MODE_MIN, TOKEN_MODE_JACCARD):
            for a, b in pairs:
                self.assertEqual(token_overlap(a, b, mode=mode), token_overlap(b, a, mode=mode))

    def test_unknown_mode_raises(self):
        with self.assertRaises(ValueError):
            token_overlap("a b c", "a b c", mode="cosine")
        with self.assertRaises(ValueError):
            token_overlap("fall risk", "fall risk", mode="cosine")


if __name__ == "__main__":
    unittest.main()
