import json
import logging
from datetime import datetime
from typing import Any, Dict

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Dict messages (the request log) are emitted as-is; plain messages go
    under ``message`` together with any ``extra=`` fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        if isinstance(record.msg, dict):
            data: Dict[str, Any] = dict(record.msg)
        else:
            data = {"message": record.getMessage()}
            for key, value in vars(record).items():
                if key not in _RECORD_ATTRS and not key.startswith("_"):
                    data.setdefault(key, value)

        data.setdefault("ts", datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="seconds"))
        data.setdefault("level", record.levelname)
        data.setdefault("logger", record.name)

        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)
