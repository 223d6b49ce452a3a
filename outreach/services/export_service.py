from typing import List, Optional
from sqlalchemy.orm import Session

from outreach.core.config import settings
from outreach.core.exceptions import ValidationError
from outreach.crud.crud_message import MessageRepository
from outreach.models import Message
import logging
import json
import csv
import io

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "json")
CSV_COLUMNS = ["id", "sender_id", "recipient_id", "channel_id", "content", "created_at"]


def _record(message: Message) -> dict:
    return {
        "id": message.id,
        "sender_id": message.sender_id,
        "recipient_id": message.recipient_id,
        "channel_id": message.channel_id,
        "content": message.content,
        "created_at": message.created_at.isoformat() if message.created_at else None,
    }


def export_messages(
    db: Session,
    export_format: Optional[str] = "csv",
    channel_id: Optional[int] = None,
    user_id: Optional[int] = None,
) -> tuple[str, str]:
    """
    Export messages as CSV or JSON.

    Returns a ``(content, media_type)`` pair. Role checks happen in the route.
    """
    export_format = (export_format or "csv").lower()
    if export_format not in EXPORT_FORMATS:
        raise ValidationError("Export format must be 'csv' or 'json'")

    messages = MessageRepository(db).find_for_export(
        channel_id=channel_id, user_id=user_id, limit=settings.EXPORT_ROW_LIMIT
    )
    logger.info(f"[Export] Exporting {len(messages)} messages as {export_format} (channel={channel_id}, user={user_id})")

    if export_format == "json":
        return generate_json_export(messages), "application/json"
    return generate_csv_export(messages), "text/csv"


def generate_json_export(messages: List[Message]) -> str:
    return json.dumps([_record(message) for message in messages], ensure_ascii=False)


def generate_csv_export(messages: List[Message]) -> str:
    """
    Fixed column order. Fields containing quotes, commas or line breaks are
    quoted and embedded quotes are doubled, so csv.reader recovers the content.
    """
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for message in messages:
        record = _record(message)
        writer.writerow(["" if record[column] is None else record[column] for column in CSV_COLUMNS])
    return output.getvalue()
