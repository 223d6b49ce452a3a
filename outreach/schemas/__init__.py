from outreach.schemas.message import Message, MessageSend, MessageUpdate, MessageFilters, MessageExportRecord
from outreach.schemas.channel import Channel, ChannelCreate, ChannelMember, ChannelMemberCreate
from outreach.schemas.user import CurrentUser
from outreach.schemas.token import TokenData
from outreach.schemas.realtime import ChangeEvent, WebSocketMessage
from outreach.schemas.conversation import Conversation, ConversationParticipant, LastMessage
