"""
Chat Store - durable storage for artifacts, chat sessions and interactions

All methods are synchronous and open their own ORM session; async callers
run them through asyncio.to_thread. Results are returned as pydantic
snapshots so no ORM object escapes its session.
"""

from datetime import datetime, timezone
from math import ceil
from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from backend.core.identity import Identity
from backend.database import create_tables
from backend.models import APIKey, Artifact, ChatMessage, ChatSession, Interaction, User
from backend.schemas.artifact import ArtifactResponse, ArtifactSummary, PersonaAttributes
from backend.schemas.chat import (
    ArtifactDetail,
    ChatHistoryItem,
    ChatHistoryResponse,
    ChatMessageOut,
    ChatSessionOut,
    ChatSessionPage,
    Pagination,
    RatingResponse,
    TurnContext,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _persona(artifact: Artifact) -> PersonaAttributes:
    return PersonaAttributes.model_validate(artifact.identification or {})


def _summary(artifact: Artifact) -> ArtifactSummary:
    persona = _persona(artifact)
    return ArtifactSummary(
        id=artifact.id,
        name=persona.name,
        category=persona.category,
        description=persona.description,
        image_url=artifact.image_url or "",
    )


def _artifact_out(artifact: Artifact) -> ArtifactResponse:
    return ArtifactResponse(
        id=artifact.id,
        user_id=artifact.user_id,
        image_url=artifact.image_url or "",
        original_filename=artifact.original_filename or "",
        identification_result=_persona(artifact),
        created_at=artifact.created_at,
    )


def _pagination(page: int, limit: int, total: int, has_more: bool) -> Pagination:
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        pages=ceil(total / limit) if limit else 0,
        has_more=has_more,
    )


class ChatStore:
    """
    Durable store behind the chat core

    Args:
        engine: SQLAlchemy engine (PostgreSQL in production, SQLite in tests)
    """

    def __init__(self, engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def create_schema(self):
        create_tables(bind=self.engine)

    def _session(self) -> Session:
        return self.SessionLocal()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_session(self, chat_session_id: str) -> Optional[ChatSessionOut]:
        """Full snapshot of a chat session with its transcript"""
        with self._session() as db:
            chat_session = db.get(ChatSession, chat_session_id)
            if not chat_session:
                return None
            return ChatSessionOut.model_validate(chat_session)

    def get_artifact_summary(self, artifact_id: str) -> Optional[ArtifactSummary]:
        with self._session() as db:
            artifact = db.get(Artifact, artifact_id)
            return _summary(artifact) if artifact else None

    def load_turn_context(self, chat_session_id: str, history_window: int) -> Optional[TurnContext]:
        """
        Load persona and recent history for one turn

        Args:
            chat_session_id: Chat session ID
            history_window: Number of most recent persisted messages to include

        Returns:
            TurnContext, or None if the session or its artifact is missing
        """
        with self._session() as db:
            chat_session = db.get(ChatSession, chat_session_id)
            if not chat_session or not chat_session.artifact:
                return None

            message_count = db.query(func.count(ChatMessage.id)).filter(
                ChatMessage.session_id == chat_session_id
            ).scalar()

            recent = []
            if history_window > 0:
                recent = db.query(ChatMessage).filter(
                    ChatMessage.session_id == chat_session_id
                ).order_by(ChatMessage.sequence.desc()).limit(history_window).all()

            return TurnContext(
                chat_session_id=chat_session.id,
                artifact=_summary(chat_session.artifact),
                persona=_persona(chat_session.artifact),
                history=[ChatMessageOut.model_validate(m) for m in reversed(recent)],
                message_count=message_count,
            )

    def page_session(self, chat_session_id: str, page: int = 1, limit: int = 50) -> Optional[ChatSessionPage]:
        """
        One page of a transcript, counting pages back from the newest message

        Page 1 holds the most recent `limit` messages; messages inside a page
        are oldest first.
        """
        with self._session() as db:
            chat_session = db.get(ChatSession, chat_session_id)
            if not chat_session:
                return None

            messages = list(chat_session.messages)
            total = len(messages)
            end = max(0, total - (page - 1) * limit)
            start = max(0, total - page * limit)

            snapshot = ChatSessionOut.model_validate(chat_session)
            snapshot = snapshot.model_copy(update={"messages": snapshot.messages[start:end]})

            return ChatSessionPage(
                chat_session=snapshot,
                artifact=_artifact_out(chat_session.artifact) if chat_session.artifact else None,
                pagination=_pagination(page, limit, total, has_more=start > 0),
            )

    def _history_item(self, chat_session: ChatSession) -> ChatHistoryItem:
        messages = chat_session.messages
        return ChatHistoryItem(
            id=chat_session.id,
            artifact=_summary(chat_session.artifact) if chat_session.artifact else None,
            title=chat_session.title,
            message_count=len(messages),
            last_message=ChatMessageOut.model_validate(messages[-1]) if messages else None,
            has_rating=chat_session.rating is not None,
            updated_at=chat_session.updated_at,
        )

    def list_history(self, identity: Identity, page: int = 1, limit: int = 20) -> ChatHistoryResponse:
        """Active chat sessions owned by the identity, most recently updated first"""
        with self._session() as db:
            query = db.query(ChatSession).filter(ChatSession.is_active.is_(True))
            if identity.user_id:
                query = query.filter(ChatSession.user_id == identity.user_id)
            else:
                query = query.filter(ChatSession.anonymous_session_id == identity.anonymous_session_id)

            total = query.count()
            sessions = query.order_by(ChatSession.updated_at.desc()).offset(
                (page - 1) * limit
            ).limit(limit).all()

            return ChatHistoryResponse(
                chat_sessions=[self._history_item(s) for s in sessions],
                pagination=_pagination(page, limit, total, has_more=page * limit < total),
            )

    def get_artifact_detail(self, artifact_id: str) -> Optional[ArtifactDetail]:
        with self._session() as db:
            artifact = db.get(Artifact, artifact_id)
            if not artifact:
                return None
            return ArtifactDetail(
                artifact=_artifact_out(artifact),
                chat_sessions=[self._history_item(s) for s in artifact.chat_sessions if s.is_active],
            )

    def resolve_api_key(self, key_hash: str) -> Optional[str]:
        """
        Look up the active user behind an API key hash

        Expired keys and inactive users resolve to None. A successful
        lookup updates last_used_at.
        """
        with self._session() as db:
            api_key = db.query(APIKey).filter(APIKey.key_hash == key_hash).first()
            if not api_key:
                return None

            now = utcnow()
            if api_key.expires_at and _aware(api_key.expires_at) < now:
                logger.info(f"Rejected expired API key {api_key.key_prefix}...")
                return None

            user = db.get(User, api_key.user_id)
            if not user or not user.is_active:
                return None

            api_key.last_used_at = now
            db.commit()
            return user.id

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append_turn(
        self,
        chat_session_id: str,
        user_message: ChatMessageOut,
        assistant_message: ChatMessageOut,
        identity: Identity,
        interaction_metadata: Optional[Dict[str, Any]] = None,
    ) -> int:
        """
        Append a user message and its reply in one transaction

        Also bumps updated_at and records a chat interaction. The unique
        (session_id, sequence) constraint rejects a concurrent append that
        computed the same slot.

        Returns:
            Transcript length after the append
        """
        with self._session() as db:
            chat_session = db.get(ChatSession, chat_session_id)
            if not chat_session:
                raise LookupError(f"Chat session {chat_session_id} not found")

            last = db.query(func.max(ChatMessage.sequence)).filter(
                ChatMessage.session_id == chat_session_id
            ).scalar()
            next_sequence = 0 if last is None else last + 1

            for offset, message in enumerate((user_message, assistant_message)):
                db.add(ChatMessage(
                    session_id=chat_session_id,
                    sequence=next_sequence + offset,
                    role=message.role.value,
                    content=message.content,
                    timestamp=message.timestamp,
                ))

            total = next_sequence + 2
            chat_session.updated_at = utcnow()

            metadata = {"chatMessageCount": total}
            metadata.update(interaction_metadata or {})
            db.add(Interaction(
                artifact_id=chat_session.artifact_id,
                chat_session_id=chat_session_id,
                interaction_type="chat",
                metadata_=metadata,
                **identity.owner_fields(),
            ))

            db.commit()
            return total

    def save_rating(
        self,
        chat_session_id: str,
        rating: str,
        comment: str,
        identity: Identity,
    ) -> Optional[RatingResponse]:
        """Overwrite the session rating and record a rating interaction"""
        with self._session() as db:
            chat_session = db.get(ChatSession, chat_session_id)
            if not chat_session:
                return None

            chat_session.rating = rating
            chat_session.rating_comment = comment
            db.add(Interaction(
                artifact_id=chat_session.artifact_id,
                chat_session_id=chat_session_id,
                interaction_type="rating",
                metadata_={"rating": rating, "comment": comment},
                **identity.owner_fields(),
            ))
            db.commit()
            return RatingResponse(rating=rating, comment=comment)

    def create_artifact_session(
        self,
        persona: PersonaAttributes,
        identity: Identity,
        title: str,
        greeting: str,
        image_url: str = "",
        original_filename: str = "",
    ) -> Tuple[ArtifactResponse, ChatSessionOut]:
        """
        Store an identified artifact and open its first chat session

        The session starts with the greeting as its only message, and an
        identification interaction is recorded alongside.
        """
        with self._session() as db:
            artifact = Artifact(
                user_id=identity.user_id,
                image_url=image_url,
                original_filename=original_filename,
                identification=persona.model_dump(by_alias=True, mode="json"),
            )
            db.add(artifact)
            db.flush()

            chat_session = ChatSession(
                artifact_id=artifact.id,
                title=title,
                **identity.owner_fields(),
            )
            db.add(chat_session)
            db.flush()

            db.add(ChatMessage(
                session_id=chat_session.id,
                sequence=0,
                role="assistant",
                content=greeting,
                timestamp=utcnow(),
            ))
            db.add(Interaction(
                artifact_id=artifact.id,
                chat_session_id=chat_session.id,
                interaction_type="identification",
                metadata_={"confidence": persona.confidence, "isRecognized": persona.is_recognized},
                **identity.owner_fields(),
            ))
            db.commit()

            db.refresh(chat_session)
            return _artifact_out(artifact), ChatSessionOut.model_validate(chat_session)

    def delete_session(self, chat_session_id: str) -> bool:
        with self._session() as db:
            chat_session = db.get(ChatSession, chat_session_id)
            if not chat_session:
                return False
            db.query(Interaction).filter(Interaction.chat_session_id == chat_session_id).delete()
            db.delete(chat_session)
            db.commit()
            return True

    def start_voice_call(
        self,
        chat_session_id: str,
        identity: Identity,
        started_at: datetime,
    ) -> Optional[Tuple[str, ArtifactSummary]]:
        """Record a voice_call interaction; returns its id and the artifact"""
        with self._session() as db:
            chat_session = db.get(ChatSession, chat_session_id)
            if not chat_session or not chat_session.artifact:
                return None

            interaction = Interaction(
                artifact_id=chat_session.artifact_id,
                chat_session_id=chat_session_id,
                interaction_type="voice_call",
                metadata_={"voiceSessionStarted": started_at.isoformat()},
                **identity.owner_fields(),
            )
            db.add(interaction)
            db.commit()
            return interaction.id, _summary(chat_session.artifact)

    def merge_interaction_metadata(self, interaction_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Add metadata keys to an interaction

        Keys already present are left untouched.

        Returns:
            The merged metadata, or None if the interaction is unknown
        """
        with self._session() as db:
            interaction = db.get(Interaction, interaction_id)
            if not interaction:
                return None

            metadata = dict(interaction.metadata_ or {})
            for key, value in fields.items():
                metadata.setdefault(key, value)
            interaction.metadata_ = metadata
            db.commit()
            return metadata

    def list_interactions(self, chat_session_id: str, interaction_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Interactions of a session in creation order, as plain dicts"""
        with self._session() as db:
            query = db.query(Interaction).filter(Interaction.chat_session_id == chat_session_id)
            if interaction_type:
                query = query.filter(Interaction.interaction_type == interaction_type)
            return [
                {
                    "id": i.id,
                    "type": i.interaction_type,
                    "userId": i.user_id,
                    "anonymousSessionId": i.anonymous_session_id,
                    "metadata": dict(i.metadata_ or {}),
                }
                for i in query.order_by(Interaction.created_at, Interaction.id).all()
            ]
