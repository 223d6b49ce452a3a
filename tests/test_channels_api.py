import pytest

from outreach.models import ChannelMember

CHANNELS_URL = "/api/v1/channels/"


@pytest.mark.parametrize("channel_type", ["general", "team", "announcement"])
def test_staff_can_create_any_channel(client, auth_headers, db, intern, channel_type):
    response = client.post(CHANNELS_URL, json={"name": "ops", "type": channel_type}, headers=auth_headers(intern))
    assert response.status_code == 200
    body = response.json()
    assert body["channel_type"] == channel_type
    assert body["created_by"] == intern.id

    owner = db.query(ChannelMember).filter(ChannelMember.channel_id == body["id"]).one()
    assert owner.user_id == intern.id
    assert owner.role == "owner"


def test_volunteer_can_only_create_team_channels(client, auth_headers, volunteer):
    headers = auth_headers(volunteer)
    assert client.post(CHANNELS_URL, json={"name": "crew", "type": "team"}, headers=headers).status_code == 200

    response = client.post(CHANNELS_URL, json={"name": "everyone", "type": "general"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["ok"] is False


def test_channel_name_is_required(client, auth_headers, founder):
    response = client.post(CHANNELS_URL, json={"name": "  "}, headers=auth_headers(founder))
    assert response.status_code == 400


def test_list_only_my_channels(client, auth_headers, volunteer, outsider, channel):
    response = client.get(CHANNELS_URL, headers=auth_headers(volunteer))
    assert [c["name"] for c in response.json()] == ["schools"]

    response = client.get(CHANNELS_URL, headers=auth_headers(outsider))
    assert response.json() == []


def test_join_and_leave(client, auth_headers, outsider, channel):
    headers = auth_headers(outsider)
    response = client.post(f"{CHANNELS_URL}{channel.id}/join", headers=headers)
    assert response.status_code == 200
    assert response.json()["role"] == "member"

    members = client.get(f"{CHANNELS_URL}{channel.id}/members", headers=headers).json()
    assert outsider.id in [m["user_id"] for m in members]

    assert client.post(f"{CHANNELS_URL}{channel.id}/leave", headers=headers).status_code == 200
    assert client.post(f"{CHANNELS_URL}{channel.id}/leave", headers=headers).status_code == 404
    assert client.get(f"{CHANNELS_URL}{channel.id}/members", headers=headers).status_code == 403


def test_volunteer_cannot_join_announcement_channel(client, auth_headers, founder, volunteer):
    created = client.post(
        CHANNELS_URL, json={"name": "news", "type": "announcement"}, headers=auth_headers(founder)
    ).json()

    response = client.post(f"{CHANNELS_URL}{created['id']}/join", headers=auth_headers(volunteer))
    assert response.status_code == 403


def test_join_unknown_channel(client, auth_headers, volunteer):
    assert client.post(f"{CHANNELS_URL}999/join", headers=auth_headers(volunteer)).status_code == 404


def test_add_member_requires_staff_or_owner(client, auth_headers, founder, volunteer, outsider, channel):
    url = f"{CHANNELS_URL}{channel.id}/members"

    response = client.post(url, json={"userId": outsider.id}, headers=auth_headers(volunteer))
    assert response.status_code == 403

    response = client.post(url, json={"userId": outsider.id}, headers=auth_headers(founder))
    assert response.status_code == 200
    assert response.json()["user_id"] == outsider.id

    response = client.post(url, json={"userId": 999}, headers=auth_headers(founder))
    assert response.status_code == 404
