# routes/messages.py
"""
1:1 direct messages.

A conversation is keyed by its sorted participant pair, so "with/{userId}"
is idempotent. New messages are pushed to the participants' open sockets
via the in-process hub.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func
from sqlalchemy.orm import Session

from config.db import get_db
from config.dependencies import require_user, current_user_optional, user_from_token
from model.base import utcnow
from model.message import Conversation, ConversationParticipant, Message, MessageRead, participants_key
from model.user import Users
from schema.social import MessageIn
from src.realtime import hub
from src.route_helpers import get_active_user_or_404
from src.serializers import serialize_author, iso

logger = logging.getLogger(__name__)

router = APIRouter()

PAGE_SIZE = 50


def _participant_ids(db: Session, conversation_id: int) -> List[int]:
    return [
        uid for (uid,) in
        db.query(ConversationParticipant.user_id).filter(ConversationParticipant.conversation_id == conversation_id)
    ]


def _conversation_for(db: Session, conversation_id: int, me: Users) -> Conversation:
    convo = db.get(Conversation, conversation_id)
    if convo is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    if db.get(ConversationParticipant, (convo.id, me.id)) is None:
        raise HTTPException(status_code=403, detail="Forbidden")
    return convo


def _unread_query(db: Session, me: Users):
    my_convos = db.query(ConversationParticipant.conversation_id).filter(ConversationParticipant.user_id == me.id)
    read_ids = db.query(MessageRead.message_id).filter(MessageRead.user_id == me.id)
    return db.query(Message).filter(
        Message.conversation_id.in_(my_convos),
        Message.sender_id != me.id,
        ~Message.id.in_(read_ids),
    )


def serialize_message(m: Message, viewer_id: int, read: bool) -> dict:
    return {
        "id": m.id,
        "conversationId": m.conversation_id,
        "senderId": m.sender_id,
        "text": m.text,
        "createdAt": iso(m.created_at),
        "status": "read" if read else "delivered",
        "mine": m.sender_id == viewer_id,
    }


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), me: Optional[Users] = Depends(current_user_optional)):
    # anonymous callers get 0 instead of 401
    if me is None:
        return {"count": 0}
    return {"count": _unread_query(db, me).count()}


@router.post("/with/{user_id}")
def open_conversation(user_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    if user_id == me.id:
        raise HTTPException(status_code=400, detail="Cannot DM yourself")
    other = get_active_user_or_404(db, user_id)

    key = participants_key(me.id, other.id)
    convo = db.query(Conversation).filter(Conversation.participants_key == key).first()
    created = False
    if convo is None:
        now = utcnow()
        convo = Conversation(participants_key=key, last_message_text="", created_at=now, updated_at=now)
        db.add(convo)
        db.flush()
        db.add(ConversationParticipant(conversation_id=convo.id, user_id=me.id))
        db.add(ConversationParticipant(conversation_id=convo.id, user_id=other.id))
        db.commit()
        created = True
        logger.info("Conversation %s opened between %s and %s", convo.id, me.id, other.id)
    return {"id": convo.id, "created": created}


@router.get("/conversations")
def list_conversations(db: Session = Depends(get_db), me: Optional[Users] = Depends(current_user_optional)):
    if me is None:
        return []

    convos = (
        db.query(Conversation)
        .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
        .filter(ConversationParticipant.user_id == me.id)
        .order_by(Conversation.last_message_at.desc(), Conversation.updated_at.desc())
        .all()
    )
    unread = dict(
        _unread_query(db, me)
        .with_entities(Message.conversation_id, func.count(Message.id))
        .group_by(Message.conversation_id)
        .all()
    )

    out = []
    for c in convos:
        others = [p.user for p in c.participants if p.user_id != me.id]
        out.append({
            "id": c.id,
            "participants": [
                {"id": p.user_id, "isSelf": p.user_id == me.id} for p in c.participants
            ],
            "with": serialize_author(others[0]) if others else None,
            "lastMessage": {
                "text": c.last_message_text,
                "createdAt": iso(c.last_message_at),
                "senderId": c.last_sender_id,
            } if c.last_message_at else None,
            "unread": int(unread.get(c.id, 0)),
        })
    return out


@router.get("/{conversation_id}")
def get_messages(
    conversation_id: int,
    before: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    me: Users = Depends(require_user),
):
    """Latest 50 messages, oldest first; `before` pages further back."""
    convo = _conversation_for(db, conversation_id, me)
    q = db.query(Message).filter(Message.conversation_id == convo.id)
    if before is not None:
        if before.tzinfo is not None:
            before = before.astimezone(timezone.utc).replace(tzinfo=None)
        q = q.filter(Message.created_at < before)
    rows = q.order_by(Message.created_at.desc(), Message.id.desc()).limit(PAGE_SIZE).all()
    rows.reverse()

    read_ids = {
        mid for (mid,) in db.query(MessageRead.message_id).filter(
            MessageRead.user_id == me.id, MessageRead.message_id.in_([m.id for m in rows])
        )
    } if rows else set()
    return [serialize_message(m, me.id, m.id in read_ids or m.sender_id == me.id) for m in rows]


@router.post("/{conversation_id}", status_code=status.HTTP_201_CREATED)
def send_message(conversation_id: int, body: MessageIn, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    convo = _conversation_for(db, conversation_id, me)
    now = utcnow()
    msg = Message(conversation_id=convo.id, sender_id=me.id, text=body.text, created_at=now)
    db.add(msg)
    db.flush()
    db.add(MessageRead(message_id=msg.id, user_id=me.id, read_at=now))

    convo.last_message_text = body.text[:500]
    convo.last_message_at = now
    convo.last_sender_id = me.id
    convo.updated_at = now
    db.commit()

    payload = serialize_message(msg, me.id, True)
    recipients = _participant_ids(db, convo.id)
    hub.publish(recipients, {"type": "message", "message": payload})
    logger.info("Message %s sent in conversation %s", msg.id, convo.id)
    return payload


@router.post("/{conversation_id}/read")
def mark_read(conversation_id: int, db: Session = Depends(get_db), me: Users = Depends(require_user)):
    convo = _conversation_for(db, conversation_id, me)
    read_ids = db.query(MessageRead.message_id).filter(MessageRead.user_id == me.id)
    unread = (
        db.query(Message.id)
        .filter(Message.conversation_id == convo.id, ~Message.id.in_(read_ids))
        .all()
    )
    now = utcnow()
    for (mid,) in unread:
        db.add(MessageRead(message_id=mid, user_id=me.id, read_at=now))
    db.commit()
    return {"ok": True, "marked": len(unread)}


def _socket_user_id(token: str, db: Session) -> int:
    try:
        return user_from_token(token, db).id
    finally:
        db.close()


@router.websocket("/ws")
async def messages_socket(websocket: WebSocket, token: str = Query(""), db: Session = Depends(get_db)):
    try:
        user_id = await run_in_threadpool(_socket_user_id, token, db)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await hub.connect(user_id, websocket)
    try:
        await websocket.send_json({"type": "hello", "userId": user_id})
        while True:
            # clients only ping; anything received is ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(user_id, websocket)
