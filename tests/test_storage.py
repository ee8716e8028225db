"""Tests for the sent-passage ledger and the subscriber directory."""

import json
import os
import shutil
import tempfile
import unittest
from datetime import date

from versebot.storage import DirectoryError, SentLedger, SubscriberDirectory


class TestSentLedger(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.temp_dir, "sent_verses.json")
        self.ledger = SentLedger(self.path)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_get_absent_is_empty(self):
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 1)), set())

    def test_append_is_idempotent(self):
        self.ledger.append("U1", date(2024, 1, 1), "John 3:16")
        self.ledger.append("U1", date(2024, 1, 1), "John 3:16")
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 1)), {"John 3:16"})

    def test_keys_are_per_subscriber_and_day(self):
        self.ledger.append("U1", date(2024, 1, 1), "John 3:16")
        self.assertEqual(self.ledger.get("U2", date(2024, 1, 1)), set())
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 2)), set())
        self.assertEqual(self.ledger.get("U1", "2024-01-01"), {"John 3:16"})

    def test_persisted_format(self):
        self.ledger.append("U1", date(2024, 1, 1), "John 3:16")
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self.assertEqual(data, {"U1|2024-01-01": ["John 3:16"]})
        self.assertFalse(os.path.exists(self.path + ".tmp"))

    def test_prunes_entries_older_than_seven_days(self):
        self.ledger.append("U1", date(2024, 1, 1), "John 3:16")
        self.ledger.append("U2", date(2024, 1, 8), "Jude 1:2")
        # 2024-01-01 is exactly seven days before 2024-01-08 and survives
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 1)), {"John 3:16"})

        self.ledger.append("U2", date(2024, 1, 9), "Jude 1:3")
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 1)), set())
        self.assertEqual(self.ledger.get("U2", date(2024, 1, 8)), {"Jude 1:2"})

    def test_corrupt_file_reads_as_empty(self):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("{broken")
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 1)), set())

        self.ledger.append("U1", date(2024, 1, 1), "John 3:16")
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 1)), {"John 3:16"})

    def test_bare_array_file_reads_as_empty(self):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("[]")
        self.assertEqual(self.ledger.get("U1", date(2024, 1, 1)), set())

    def test_in_memory_ledger(self):
        ledger = SentLedger(path=None)
        ledger.append("U1", date(2024, 1, 1), "John 3:16")
        self.assertEqual(ledger.get("U1", date(2024, 1, 1)), {"John 3:16"})


class TestSubscriberDirectory(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.temp_dir, "users.json")
        self.directory = SubscriberDirectory(self.path)

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def test_get_unknown(self):
        self.assertIsNone(self.directory.get(42))

    def test_upsert_creates_with_defaults(self):
        sub = self.directory.upsert(42, "alice")
        self.assertEqual(sub.user_id, "42")
        self.assertEqual(sub.username, "alice")
        self.assertEqual(sub.topic, "encouragement")
        self.assertEqual(
            sub.slots(),
            {"morning": "07:30", "midday": "12:00", "afternoon": "16:30", "evening": "21:00"},
        )
        self.assertIsNotNone(sub.registered_at)

    def test_upsert_keeps_existing(self):
        self.directory.upsert(42, "alice")
        self.directory.set_topic(42, "faith")
        sub = self.directory.upsert(42, "renamed")
        self.assertEqual(sub.topic, "faith")
        self.assertEqual(sub.username, "alice")

    def test_update_unknown_returns_none(self):
        self.assertIsNone(self.directory.update(7, {"topic": "faith"}))

    def test_set_slot(self):
        self.directory.upsert(42, "alice")
        sub = self.directory.set_slot(42, "Morning", "06:15")
        self.assertEqual(sub.morning, "06:15")
        self.assertEqual(self.directory.get(42).morning, "06:15")

    def test_set_slot_validation(self):
        self.directory.upsert(42, "alice")
        with self.assertRaises(DirectoryError):
            self.directory.set_slot(42, "noon", "12:00")
        with self.assertRaises(DirectoryError):
            self.directory.set_slot(42, "morning", "7:30")
        with self.assertRaises(DirectoryError):
            self.directory.set_slot(42, "morning", "25:00")

    def test_by_slot_matches_any_slot_once(self):
        self.directory.upsert(1, "a")
        self.directory.upsert(2, "b")
        self.directory.set_slot(2, "morning", "08:00")
        # Misconfigured: two slots share a value
        self.directory.set_slot(2, "evening", "08:00")

        self.assertEqual([s.user_id for s in self.directory.by_slot("07:30")], ["1"])
        self.assertEqual([s.user_id for s in self.directory.by_slot("08:00")], ["2"])
        self.assertEqual(
            sorted(s.user_id for s in self.directory.by_slot("12:00")), ["1", "2"]
        )
        self.assertEqual(self.directory.by_slot("03:00"), [])

    def test_corrupt_file_reads_as_empty(self):
        with open(self.path, "w", encoding="utf-8") as f:
            f.write("not json at all")
        self.assertEqual(self.directory.all(), [])
        self.assertEqual(self.directory.upsert(1, "a").user_id, "1")

    def test_partial_record_gets_defaults(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump({"5": {"user_id": 5, "topic": "peace"}, "6": "garbage"}, f)
        subs = self.directory.all()
        self.assertEqual(len(subs), 1)
        self.assertEqual(subs[0].user_id, "5")
        self.assertEqual(subs[0].evening, "21:00")

    def test_file_key_overrides_stored_user_id(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(
                {
                    "42": {"user_id": None, "topic": "faith", "morning": "07:30"},
                    "43": {"user_id": "99", "morning": "07:30"},
                },
                f,
            )
        subs = self.directory.by_slot("07:30")
        self.assertEqual(sorted(s.user_id for s in subs), ["42", "43"])
        self.assertEqual(self.directory.get(42).topic, "faith")


if __name__ == "__main__":
    unittest.main()
