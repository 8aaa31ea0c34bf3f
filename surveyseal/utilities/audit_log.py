#!/usr/bin/env python3
# -*- coding: utf-8 -*-


from datetime import datetime, timezone
import json
import os
import sys
import typing
import threading

_AUDIT_FILE = os.path.join(os.path.dirname(__file__), "audit.log")

# Keys whose values never reach the audit file
_REDACTED_KEYS = {"key", "aes_key", "private_key", "private_key_pem", "plaintext", "password"}


#####################################################################################################################################################################

"""
    Provides persistent structured audit logging for SurveySeal.
"""
class AuditLog:

	def __init__(self, path: typing.Optional[str] = None):
		self._lock = threading.RLock()
		self._path = path or _AUDIT_FILE


	@property
	def path(self) -> str:
		return self._path


	def event(self, **kv: typing.Any):

		# Construct ISO8601Z timestamp
		ts = datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

		# Append timestamp to event
		record = {"timestamp": ts}
		for name, value in kv.items():
			record[name] = "[redacted]" if name in _REDACTED_KEYS else value

		with self._lock:
			try:
				with open(self._path, "a", encoding="utf-8") as f:
					json.dump(record, f, ensure_ascii=False, default=str)
					f.write("\n")

			except Exception as e:
				print(f"Audit log write error: {e}", file=sys.stderr)
