#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: testSurveyRecord.py

    Description:
        Tests for SurveyRecord defaults and its storage row rendering.
"""

import unittest
from datetime import datetime, timezone
from surveyseal.handlers.survey_record import SurveyRecord
import surveyseal.constants as CONSTANTS


class TestSurveyRecord(unittest.TestCase):

    RECEIVED_AT = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    """
        An empty object yields a record of blank defaults.
    """
    def test_defaults(self):

        record = SurveyRecord.from_dict({})

        self.assertEqual("", record.client_id)
        self.assertEqual("", record.timestamp)
        self.assertEqual({}, record.meta)
        self.assertEqual({}, record.answers)
        self.assertEqual([], record.sequence)
        self.assertIsNone(record.pointer)
        self.assertIsNone(record.smart_score)
        self.assertIsNone(record.confidence_score)
        self.assertFalse(record.test_ping)
        self.assertEqual({}, record.extra)

    """
        Recognized fields are mapped and unknown ones kept in extra.
    """
    def test_from_dict_maps_fields(self):

        obj = {
            "clientId": "abc",
            "timestamp": "2026-01-01T00:00:00Z",
            "meta": {"ua": "x"},
            "answers": {"q1": 4},
            "sequence": ["q1"],
            "pointer": 3,
            "smartScore": 0.5,
            "confidenceScore": 1,
            "testPing": True,
            "campaign": "spring",
        }

        record = SurveyRecord.from_dict(obj)

        self.assertEqual("abc", record.client_id)
        self.assertEqual({"q1": 4}, record.answers)
        self.assertEqual(["q1"], record.sequence)
        self.assertEqual(3, record.pointer)
        self.assertEqual(0.5, record.smart_score)
        self.assertTrue(record.test_ping)
        self.assertEqual({"campaign": "spring"}, record.extra)
        self.assertIs(obj, record.source)

    """
        Wrongly typed values fall back to defaults instead of failing.
    """
    def test_wrong_types_fall_back(self):

        record = SurveyRecord.from_dict({"clientId": 7, "meta": [], "sequence": "q1", "pointer": "3", "smartScore": True, "testPing": "yes"})

        self.assertEqual("", record.client_id)
        self.assertEqual({}, record.meta)
        self.assertEqual([], record.sequence)
        self.assertIsNone(record.pointer)
        self.assertIsNone(record.smart_score)
        self.assertFalse(record.test_ping)

    """
        to_row follows the sink's column order and marks test pings.
    """
    def test_to_row(self):

        record = SurveyRecord.from_dict({"clientId": "abc", "answers": {"q1": "é"}, "pointer": 3, "testPing": True})

        row = record.to_row(self.RECEIVED_AT)

        self.assertEqual(len(CONSTANTS._SUBMISSION_COLUMNS), len(row))

        values = dict(zip(CONSTANTS._SUBMISSION_COLUMNS, row))
        self.assertEqual(self.RECEIVED_AT, values["received_at"])
        self.assertEqual("abc", values["client_id"])
        self.assertEqual("", values["client_timestamp"])
        self.assertEqual("{}", values["meta"])
        self.assertEqual('{"q1":"é"}', values["answers"])
        self.assertEqual("[]", values["sequence"])
        self.assertEqual(3, values["pointer"])
        self.assertIsNone(values["smart_score"])
        self.assertEqual("TEST", values["test_ping"])

        self.assertEqual("", SurveyRecord().to_row(self.RECEIVED_AT)[-1])


if __name__ == "__main__":
    unittest.main()
