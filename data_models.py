"""
Data models for cached news, rotation metadata and subscribers.
"""
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class NewsData:
    """A news snippet as produced by the upstream provider"""
    news_text: str
    audio_url: Optional[str] = None
    generated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'newsText': self.news_text,
            'audioUrl': self.audio_url,
            'generatedAt': self.generated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NewsData':
        return cls(
            news_text=data['newsText'],
            audio_url=data.get('audioUrl'),
            generated_at=int(data.get('generatedAt') or 0),
        )


@dataclass(frozen=True)
class RotationMeta:
    """Per-region pointer to the currently active cache bucket"""
    active_key: str
    active_date: date
    updated_at: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'activeKey': self.active_key,
            'activeDate': self.active_date.isoformat(),
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RotationMeta':
        return cls(
            active_key=data['activeKey'],
            active_date=date.fromisoformat(data['activeDate']),
            updated_at=int(data.get('updatedAt') or 0),
        )


@dataclass(frozen=True)
class ActiveKey:
    key: str
    date: date
    is_new_period: bool


@dataclass
class Subscriber:
    """Data class for newsletter subscribers"""
    name: str
    email: str
    phone: Optional[str] = None
    created_at: datetime = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    def to_document(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'createdAt': self.created_at,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> 'Subscriber':
        return cls(
            name=doc.get('name', ''),
            email=doc.get('email', ''),
            phone=doc.get('phone'),
            created_at=doc.get('createdAt'),
        )

    def to_json(self) -> Dict[str, Any]:
        data = self.to_document()
        data['createdAt'] = self.created_at.isoformat() if self.created_at else None
        return data
