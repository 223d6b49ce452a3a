import csv
import io
import json

import pytest

from outreach.core.config import settings
from outreach.core.exceptions import ValidationError
from outreach.crud.crud_message import MessageRepository
from outreach.services import export_service


@pytest.fixture
def repo(db):
    return MessageRepository(db)


def test_csv_header_and_quote_escaping(db, repo, founder, volunteer, channel):
    tricky = 'She said "bring the kits", then left\nsecond line'
    repo.insert(sender_id=founder.id, content=tricky, channel_id=channel.id)
    repo.insert(sender_id=volunteer.id, content="plain", recipient_id=founder.id)

    content, media_type = export_service.export_messages(db, export_format="csv")

    assert media_type == "text/csv"
    assert content.splitlines()[0] == "id,sender_id,recipient_id,channel_id,content,created_at"
    assert '""bring the kits""' in content

    rows = list(csv.DictReader(io.StringIO(content)))
    assert [row["content"] for row in rows] == [tricky, "plain"]
    assert rows[0]["channel_id"] == str(channel.id)
    assert rows[0]["recipient_id"] == ""
    assert rows[1]["recipient_id"] == str(founder.id)


def test_json_export_records(db, repo, founder, channel):
    message = repo.insert(sender_id=founder.id, content='quote " inside', channel_id=channel.id)

    content, media_type = export_service.export_messages(db, export_format="json")

    assert media_type == "application/json"
    records = json.loads(content)
    assert len(records) == 1
    assert records[0]["id"] == message.id
    assert records[0]["content"] == 'quote " inside'
    assert set(records[0]) == {"id", "sender_id", "recipient_id", "channel_id", "content", "created_at"}


def test_export_filters_by_channel_and_user(db, repo, founder, volunteer, intern, channel):
    repo.insert(sender_id=founder.id, content="in channel", channel_id=channel.id)
    repo.insert(sender_id=intern.id, content="to volunteer", recipient_id=volunteer.id)
    repo.insert(sender_id=founder.id, content="to intern", recipient_id=intern.id)

    content, _ = export_service.export_messages(db, export_format="json", channel_id=channel.id)
    assert [r["content"] for r in json.loads(content)] == ["in channel"]

    content, _ = export_service.export_messages(db, export_format="json", user_id=volunteer.id)
    assert [r["content"] for r in json.loads(content)] == ["to volunteer"]


def test_export_skips_deleted_and_is_bounded(db, repo, founder, channel, monkeypatch):
    monkeypatch.setattr(settings, "EXPORT_ROW_LIMIT", 2)
    gone = repo.insert(sender_id=founder.id, content="gone", channel_id=channel.id)
    repo.soft_delete(gone)
    for i in range(3):
        repo.insert(sender_id=founder.id, content=f"kept {i}", channel_id=channel.id)

    content, _ = export_service.export_messages(db, export_format="json")
    assert [r["content"] for r in json.loads(content)] == ["kept 0", "kept 1"]


def test_default_format_is_csv(db):
    content, media_type = export_service.export_messages(db, export_format=None)
    assert media_type == "text/csv"
    assert content == "id,sender_id,recipient_id,channel_id,content,created_at\n"


def test_unknown_format_is_rejected(db):
    with pytest.raises(ValidationError):
        export_service.export_messages(db, export_format="xlsx")
