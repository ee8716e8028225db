"""Tests for corpus index construction."""

import json
import os
import shutil
import tempfile
import unittest

from versebot.corpus import CorpusError, build_index, load_corpus
from versebot.models import PassageRef

from tests.sample_data import SAMPLE_CORPUS


class TestRecordCorpus(unittest.TestCase):
    """Record-shaped corpora with field aliases."""

    def setUp(self):
        self.index = build_index(SAMPLE_CORPUS)

    def test_all_records_indexed(self):
        self.assertEqual(len(self.index), len(SAMPLE_CORPUS))

    def test_field_aliases(self):
        # Romans uses `book`, Hebrews uses capitalized fields
        self.assertTrue(self.index.verify("Romans", 1, 17))
        self.assertIn("substance of things hoped for", self.index.lookup("Hebrews", 11, 1))

    def test_spaced_book_names_normalize(self):
        self.assertEqual(self.index.lookup("1 John", 4, 8), self.index.lookup("1John", 4, 8))
        self.assertIsNotNone(self.index.lookup("1 John", 4, 8))

    def test_string_numbers_accepted(self):
        self.assertTrue(self.index.verify("James", "2", "26"))

    def test_unknown_refs(self):
        self.assertFalse(self.index.verify("Joshua", 99, 99))
        self.assertFalse(self.index.verify("Fakebook", 1, 1))
        self.assertIsNone(self.index.lookup("Joshua", "x", 9))

    def test_all_keeps_load_order_and_display_names(self):
        refs = [str(p.ref) for p in self.index.all()]
        self.assertEqual(refs[0], "Joshua 1:9")
        self.assertEqual(refs[-2], "1 John 4:8")
        self.assertEqual(len(refs), len(SAMPLE_CORPUS))

    def test_all_is_restartable(self):
        first = self.index.all()
        first.clear()
        self.assertEqual(len(self.index.all()), len(SAMPLE_CORPUS))

    def test_text_is_stripped(self):
        index = build_index([{"book": "Jude", "chapter": 1, "verse": 2, "text": "  Mercy unto you.  \n"}])
        self.assertEqual(index.lookup("Jude", 1, 2), "Mercy unto you.")

    def test_incomplete_records_skipped(self):
        index = build_index(
            [
                {"book": "Jude", "chapter": 1, "verse": 2, "text": "Mercy unto you."},
                {"book": "Jude", "chapter": 1, "text": "no verse"},
                {"chapter": 1, "verse": 3, "text": "no book"},
                "not a record",
            ]
        )
        self.assertEqual(len(index), 1)

    def test_duplicate_key_later_wins(self):
        index = build_index(
            [
                {"book": "1 John", "chapter": 3, "verse": 16, "text": "first"},
                {"book": "Jude", "chapter": 1, "verse": 2, "text": "other"},
                {"book": "1John", "chapter": 3, "verse": 16, "text": "second"},
            ]
        )
        self.assertEqual(index.lookup("1 John", 3, 16), "second")
        self.assertEqual(len(index), 2)
        # The surviving entry keeps the position of the first occurrence
        self.assertEqual([p.text for p in index.all()], ["second", "other"])


class TestKeyedCorpus(unittest.TestCase):
    """Flat "Book.Chapter.Verse" mappings."""

    def test_keyed_corpus(self):
        index = build_index(
            {
                "Genesis.1.1": "In the beginning God created the heaven and the earth.",
                "1John.3.16": "Hereby perceive we the love of God.",
                "Song.of.Solomon.2.4": "His banner over me was love.",
            }
        )
        self.assertEqual(len(index), 3)
        self.assertTrue(index.verify("1 John", 3, 16))
        self.assertTrue(index.verify("Song of Solomon", 2, 4))
        self.assertEqual(index.all()[0].ref, PassageRef("Genesis", 1, 1))

    def test_empty_text_and_bad_keys_skipped(self):
        index = build_index({"Genesis.1.1": "text", "Genesis.1.2": "", "Genesis": "x", "Ruth.a.1": "y"})
        self.assertEqual(len(index), 1)


class TestCorpusFailures(unittest.TestCase):
    def test_missing_corpus(self):
        with self.assertRaises(CorpusError):
            build_index(None)

    def test_empty_array(self):
        with self.assertRaises(CorpusError):
            build_index([])

    def test_no_usable_entries(self):
        with self.assertRaises(CorpusError):
            build_index([{"book": "Jude"}])
        with self.assertRaises(CorpusError):
            build_index({})

    def test_unsupported_shape(self):
        with self.assertRaises(CorpusError):
            build_index("Genesis 1:1")


class TestLoadCorpus(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_load_from_file(self):
        path = os.path.join(self.temp_dir, "kjv.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump(SAMPLE_CORPUS, f)

        index = load_corpus(path)
        self.assertEqual(len(index), len(SAMPLE_CORPUS))

    def test_missing_file(self):
        with self.assertRaises(CorpusError):
            load_corpus(os.path.join(self.temp_dir, "nope.json"))

    def test_corrupt_file(self):
        path = os.path.join(self.temp_dir, "kjv.json")
        with open(path, "w", encoding="utf-8") as f:
            f.write("{not json")
        with self.assertRaises(CorpusError):
            load_corpus(path)


if __name__ == "__main__":
    unittest.main()
