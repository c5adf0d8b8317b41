"""
人物目录服务

默认人物、按轮次确定人物、猜测匹配以及从数据库解析某一轮的人物。
"""

import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional
from sqlalchemy.orm import Session

from madurinn.core.utils import fnv1a_32, normalize
from madurinn.models.person import Person
from madurinn.models.round_model import Round

logger = logging.getLogger(__name__)


@dataclass
class PersonProfile:
    """游戏逻辑使用的人物信息（与数据库行解耦）"""
    id: str
    display_name: str
    reveal_text: str
    image_url: str
    aliases: List[str] = field(default_factory=list)
    hint_text: str = ""
    yes_keywords: List[str] = field(default_factory=list)
    no_keywords: List[str] = field(default_factory=list)
    is_icelander: bool = True

    @classmethod
    def from_row(cls, row: Person, hint_override: Optional[str] = None) -> "PersonProfile":
        return cls(
            id=row.id,
            display_name=row.display_name,
            reveal_text=row.reveal_text,
            image_url=row.image_url or "",
            aliases=list(row.aliases or []),
            hint_text=hint_override or row.hint_text or "",
            yes_keywords=list(row.yes_keywords or []),
            no_keywords=list(row.no_keywords or []),
            is_icelander=bool(row.is_icelander),
        )

    def reveal(self) -> dict:
        return {
            "display_name": self.display_name,
            "reveal_text": self.reveal_text,
            "image_url": self.image_url,
        }


DEFAULT_PERSONS: List[PersonProfile] = [
    PersonProfile(
        id="p-egill",
        display_name="Egill Skallagrímsson",
        reveal_text="Skáld og víkingur úr Íslendingasögunum.",
        image_url="https://upload.wikimedia.org/wikipedia/commons/8/84/Egilssaga17.jpg",
        aliases=["egill", "egill skallagrimsson", "skallagrimsson"],
        hint_text="Persónan tengist fornsögum Íslands og er þekkt fyrir ljóð.",
        yes_keywords=["saga", "forn", "skáld", "karl", "islendingasaga", "miðaldir"],
        no_keywords=["kona", "tónlist", "fótbolti", "leikari"],
    ),
    PersonProfile(
        id="p-bjork",
        display_name="Björk Guðmundsdóttir",
        reveal_text="Íslensk tónlistarkona og alþjóðleg listakona.",
        image_url="https://upload.wikimedia.org/wikipedia/commons/7/74/Bj%C3%B6rk_at_S%C3%B3leyjargata.jpg",
        aliases=["bjork", "björk", "bjork gudmundsdottir", "björk guðmundsdóttir"],
        hint_text="Persónan er þekkt fyrir mjög sérstakan söngstíl.",
        yes_keywords=["kona", "söng", "tónlist", "list", "pop", "album"],
        no_keywords=["fótbolti", "forseti", "vísind"],
    ),
    PersonProfile(
        id="p-vigdis",
        display_name="Vigdís Finnbogadóttir",
        reveal_text="Fyrrverandi forseti Íslands og mikilvæg táknmynd.",
        image_url="https://upload.wikimedia.org/wikipedia/commons/f/f6/Vigdis_Finnbogadottir_1985.jpg",
        aliases=["vigdis", "vigdís", "vigdís finnbogadóttir", "vigdis finnbogadottir"],
        hint_text="Persónan tengist embætti þjóðhöfðingja.",
        yes_keywords=["kona", "forseti", "stjórnmál", "island", "embætti"],
        no_keywords=["fótbolti", "rap", "leikari"],
    ),
]


def get_person_for_round_id(round_id: str) -> PersonProfile:
    """按轮次ID哈希确定默认人物"""
    return DEFAULT_PERSONS[fnv1a_32(round_id) % len(DEFAULT_PERSONS)]


def accepted_names(person: PersonProfile) -> List[str]:
    names = [normalize(name) for name in [person.display_name, *person.aliases]]
    return [name for name in names if name]


def is_correct_guess(guess: str, person: PersonProfile) -> bool:
    """规范化后完全相同，或猜测中包含名字/别名，即视为猜中"""
    normalized_guess = normalize(guess)
    if not normalized_guess:
        return False
    return any(
        normalized_guess == candidate or candidate in normalized_guess
        for candidate in accepted_names(person)
    )


class PersonService:
    """人物目录服务"""

    def __init__(self, db: Session):
        self.db = db

    def ensure_default_persons(self) -> int:
        """写入缺失的默认人物，返回新写入的数量"""
        inserted = 0
        for profile in DEFAULT_PERSONS:
            if self.db.get(Person, profile.id):
                continue
            self.db.add(Person(
                id=profile.id,
                display_name=profile.display_name,
                slug=profile.id,
                reveal_text=profile.reveal_text,
                image_url=profile.image_url,
                aliases=profile.aliases,
                hint_text=profile.hint_text,
                yes_keywords=profile.yes_keywords,
                no_keywords=profile.no_keywords,
                is_icelander=profile.is_icelander,
            ))
            inserted += 1
        if inserted:
            self.db.commit()
        return inserted

    def resolve_person_for_round(self, round_id: str) -> PersonProfile:
        """优先使用轮次表中指定的人物，找不到时回退到哈希分配的默认人物"""
        round_row = self.db.get(Round, round_id)
        if not round_row:
            return get_person_for_round_id(round_id)

        person_row = self.db.get(Person, round_row.person_id)
        if not person_row:
            logger.warning(f"⚠️ 轮次 {round_id} 指向的人物 {round_row.person_id} 不存在，使用默认人物")
            fallback = get_person_for_round_id(round_id)
            if round_row.hint_text:
                return replace(fallback, hint_text=round_row.hint_text)
            return fallback

        return PersonProfile.from_row(person_row, hint_override=round_row.hint_text)
