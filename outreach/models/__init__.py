from outreach.models.user import User
from outreach.models.channel import Channel, ChannelType
from outreach.models.channel_member import ChannelMember
from outreach.models.message import Message
from outreach.models.message_log import MessageLog
