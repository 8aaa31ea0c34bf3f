#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
    File name: survey_record.py

    Description:
        Schema for the survey record recovered from a decrypted envelope. All
        recognized fields are optional; absent or wrongly typed values fall
        back to blank equivalents so that a well-formed JSON object is never
        rejected for missing optional data. Also renders the record as a row
        in the storage sink's fixed column order.
"""

import typing
from dataclasses import dataclass, field
from datetime import datetime

import surveyseal.constants as CONSTANTS
import surveyseal.handlers.sanitization_validation as VALIDATION


def _as_str(value: typing.Any) -> str:
    return value if isinstance(value, str) else ""


def _as_object(value: typing.Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_number(value: typing.Any) -> typing.Optional[float]:
    # bool is an int subclass but never a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


@dataclass
class SurveyRecord:

    client_id: str = ""
    timestamp: str = ""
    meta: dict = field(default_factory=dict)
    answers: dict = field(default_factory=dict)
    sequence: typing.Union[dict, list] = field(default_factory=list)
    pointer: typing.Optional[float] = None
    smart_score: typing.Optional[float] = None
    confidence_score: typing.Optional[float] = None
    test_ping: bool = False

    # Fields the schema does not recognize, kept untouched
    extra: dict = field(default_factory=dict)

    # Parsed JSON object the record was built from
    source: dict = field(default_factory=dict, repr=False, compare=False)


    """
        Build a record from a parsed JSON object.

        @param obj (dict): Output of parse_plaintext_json.
        @return SurveyRecord: Record with defaults applied to absent fields.
    """
    @classmethod
    def from_dict(cls, obj: dict) -> "SurveyRecord":

        sequence = obj.get("sequence")
        if not isinstance(sequence, (dict, list)):
            sequence = []

        known = {"clientId", "timestamp", "meta", "answers", "sequence", "pointer", "smartScore", "confidenceScore", "testPing"}

        return cls(
            client_id=_as_str(obj.get("clientId")),
            timestamp=_as_str(obj.get("timestamp")),
            meta=_as_object(obj.get("meta")),
            answers=_as_object(obj.get("answers")),
            sequence=sequence,
            pointer=_as_number(obj.get("pointer")),
            smart_score=_as_number(obj.get("smartScore")),
            confidence_score=_as_number(obj.get("confidenceScore")),
            test_ping=obj.get("testPing") is True,
            extra={k: v for k, v in obj.items() if k not in known},
            source=obj,
        )


    def to_row(self, received_at: datetime) -> typing.Tuple[typing.Any, ...]:
        """Values in the order of constants._SUBMISSION_COLUMNS."""

        return (
            received_at,
            self.client_id,
            self.timestamp,
            VALIDATION.encode_json_text(self.meta),
            VALIDATION.encode_json_text(self.answers),
            VALIDATION.encode_json_text(self.sequence),
            self.pointer,
            self.smart_score,
            self.confidence_score,
            CONSTANTS._TEST_PING_MARKER if self.test_ping else "",
        )
