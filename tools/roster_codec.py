#!/usr/bin/env python3
"""
roster_codec.py - Chara roster encoder/decoder for URL sharing

Packs a roster of chara records into a compact, URL-safe string and reads
it back. Field widths are fixed; list lengths are carried in small count
fields, so records are concatenated without separators.

Design Rationale
----------------
- Fixed-width fields avoid a length prefix per field. Only the three
  variable lists (factors, skills, parents) carry a count.
- Oversized lists and rosters are truncated silently. Truncation is part
  of the format, not an error.
- Skill levels are coarsened to one bit ("level > 1"). Decoded skills
  come back as level 1 or 2.
- Metadata that is not on the wire (create_time, rarity, chara_seed,
  support_card_list) is filled from a PlaceholderProvider on decode, so
  every decoded record is structurally complete.
- Decoding never raises. A version mismatch is a warning; any other
  failure yields an empty roster.

Binary Format (Version 2):
    Header (16 bits): version:8 + count:8
    Per Chara:
        card_id:20, talent_level-1:3
        speed:11, stamina:11, power:11, guts:11, wiz:11
        aptitudes: 10 x 3 bits (value-1)
            distance short/mile/middle/long, ground turf/dirt,
            running style nige/senko/sashi/oikomi
        factor_count:4, factor_id:24 x count
        skill_count:6, (skill_id:16, level_gt1:1) x count
        parent_count:2, per parent:
            card_id:20, talent_level-1:3,
            factor_count:4, factor_id:24 x count

Usage:
    from roster_codec import CharaRecord, encode_roster, decode_roster

    text = encode_roster(charas)
    charas = decode_roster(text)
"""

import logging
import random
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from bit_stream import BitStream


log = logging.getLogger(__name__)


ENCODING_VERSION = 2

# Header
VERSION_BITS = 8
COUNT_BITS = 8
MAX_CHARAS = (1 << COUNT_BITS) - 1

# Identity
CARD_ID_BITS = 20
TALENT_BITS = 3

# Stats
STAT_BITS = 11
STAT_MAX = (1 << STAT_BITS) - 1
STAT_FIELDS = ('speed', 'stamina', 'power', 'guts', 'wiz')

# Aptitudes (1-8 stored as 0-7), wire order
APTITUDE_BITS = 3
APTITUDE_FIELDS = (
    'proper_distance_short',
    'proper_distance_mile',
    'proper_distance_middle',
    'proper_distance_long',
    'proper_ground_turf',
    'proper_ground_dirt',
    'proper_running_style_nige',
    'proper_running_style_senko',
    'proper_running_style_sashi',
    'proper_running_style_oikomi',
)

# Factors
FACTOR_COUNT_BITS = 4
FACTOR_ID_BITS = 24
MAX_FACTORS = (1 << FACTOR_COUNT_BITS) - 1

# Skills
SKILL_COUNT_BITS = 6
SKILL_ID_BITS = 16
SKILL_LEVEL_FLAG_BITS = 1
MAX_SKILLS = (1 << SKILL_COUNT_BITS) - 1

# Parents
PARENT_COUNT_BITS = 2
MAX_PARENTS = (1 << PARENT_COUNT_BITS) - 1

# Fixed part of a record: identity + stats + aptitudes
MIN_RECORD_BITS = (CARD_ID_BITS + TALENT_BITS
                   + STAT_BITS * len(STAT_FIELDS)
                   + APTITUDE_BITS * len(APTITUDE_FIELDS))

CREATE_TIME_FORMAT = '%Y-%m-%d %H:%M:%S'
DEFAULT_RARITY = 3
CHARA_SEED_RANGE = 1000000


@dataclass
class SkillEntry:
    """Skill id plus level. Only level > 1 survives encoding."""
    skill_id: int
    level: int = 1


@dataclass
class ParentRecord:
    """Parent (succession) chara: identity plus its own factor list."""
    card_id: int
    talent_level: int = 1
    factor_id_array: List[int] = field(default_factory=list)
    position_id: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParentRecord':
        return cls(
            card_id=data.get('card_id', 0),
            talent_level=data.get('talent_level', 1),
            factor_id_array=list(data.get('factor_id_array', [])),
            position_id=data.get('position_id', 0),
        )


@dataclass
class CharaRecord:
    """A trained chara as exported by the roster viewer."""
    card_id: int
    talent_level: int = 1
    create_time: str = ''
    rarity: int = DEFAULT_RARITY
    chara_seed: int = 0
    speed: int = 0
    stamina: int = 0
    power: int = 0
    guts: int = 0
    wiz: int = 0
    proper_distance_short: int = 1
    proper_distance_mile: int = 1
    proper_distance_middle: int = 1
    proper_distance_long: int = 1
    proper_ground_turf: int = 1
    proper_ground_dirt: int = 1
    proper_running_style_nige: int = 1
    proper_running_style_senko: int = 1
    proper_running_style_sashi: int = 1
    proper_running_style_oikomi: int = 1
    factor_id_array: List[int] = field(default_factory=list)
    skill_array: List[SkillEntry] = field(default_factory=list)
    succession_chara_array: List[ParentRecord] = field(default_factory=list)
    support_card_list: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CharaRecord':
        """Build a record from roster export keys. Missing keys use defaults."""
        defaults = cls(card_id=0)
        values = {}
        for name in ('card_id', 'talent_level', 'create_time', 'rarity',
                     'chara_seed') + STAT_FIELDS + APTITUDE_FIELDS:
            values[name] = data.get(name, getattr(defaults, name))

        values['factor_id_array'] = list(data.get('factor_id_array', []))
        values['skill_array'] = [
            SkillEntry(skill_id=s.get('skill_id', 0), level=s.get('level', 1))
            for s in data.get('skill_array', [])
        ]
        values['succession_chara_array'] = [
            ParentRecord.from_dict(p)
            for p in data.get('succession_chara_array', [])
        ]
        values['support_card_list'] = list(data.get('support_card_list', []))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PlaceholderProvider:
    """
    Supplies values for fields that are not stored on the wire.

    The default uses UTC wall-clock time and an unseeded RNG. Pass a fixed
    clock and a seeded random.Random for reproducible decodes.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None,
                 rng: Optional[random.Random] = None,
                 rarity: int = DEFAULT_RARITY):
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.rng = rng or random.Random()
        self.rarity = rarity

    def create_time(self) -> str:
        return self.clock().strftime(CREATE_TIME_FORMAT)

    def chara_seed(self) -> int:
        return self.rng.randrange(CHARA_SEED_RANGE)


@dataclass
class RosterDecodeResult:
    """Result of decoding a roster string."""
    records: List[CharaRecord] = field(default_factory=list)
    version: Optional[int] = None
    count: int = 0
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return len(self.errors) == 0

    @property
    def version_matches(self) -> bool:
        return self.version == ENCODING_VERSION


# =============================================================================
# Record codec
# =============================================================================

def _clamp_stat(value: int) -> int:
    return max(0, min(value, STAT_MAX))


def _write_factors(stream: BitStream, factor_ids: Sequence[int]) -> None:
    factors = list(factor_ids)[:MAX_FACTORS]
    stream.write(len(factors), FACTOR_COUNT_BITS)
    for factor_id in factors:
        stream.write(factor_id, FACTOR_ID_BITS)


def _read_factors(stream: BitStream) -> List[int]:
    count = stream.read(FACTOR_COUNT_BITS)
    return [stream.read(FACTOR_ID_BITS) for _ in range(count)]


def encode_record(stream: BitStream, record: CharaRecord) -> None:
    """Append one chara to the stream."""
    stream.write(record.card_id, CARD_ID_BITS)
    stream.write(record.talent_level - 1, TALENT_BITS)

    for name in STAT_FIELDS:
        stream.write(_clamp_stat(getattr(record, name)), STAT_BITS)

    for name in APTITUDE_FIELDS:
        stream.write(getattr(record, name) - 1, APTITUDE_BITS)

    _write_factors(stream, record.factor_id_array)

    skills = record.skill_array[:MAX_SKILLS]
    stream.write(len(skills), SKILL_COUNT_BITS)
    for skill in skills:
        stream.write(skill.skill_id, SKILL_ID_BITS)
        stream.write(1 if skill.level > 1 else 0, SKILL_LEVEL_FLAG_BITS)

    parents = record.succession_chara_array[:MAX_PARENTS]
    stream.write(len(parents), PARENT_COUNT_BITS)
    for parent in parents:
        stream.write(parent.card_id, CARD_ID_BITS)
        stream.write(parent.talent_level - 1, TALENT_BITS)
        _write_factors(stream, parent.factor_id_array)


def decode_record(stream: BitStream,
                  placeholders: Optional[PlaceholderProvider] = None
                  ) -> Optional[CharaRecord]:
    """
    Read one chara from the stream.

    Returns None when fewer than MIN_RECORD_BITS remain; the caller should
    stop reading further records.
    """
    if stream.remaining_bits() < MIN_RECORD_BITS:
        return None
    if placeholders is None:
        placeholders = PlaceholderProvider()

    card_id = stream.read(CARD_ID_BITS)
    talent_level = stream.read(TALENT_BITS) + 1

    stats = {name: stream.read(STAT_BITS) for name in STAT_FIELDS}
    aptitudes = {name: stream.read(APTITUDE_BITS) + 1 for name in APTITUDE_FIELDS}

    factor_id_array = _read_factors(stream)

    skill_array = []
    for _ in range(stream.read(SKILL_COUNT_BITS)):
        skill_id = stream.read(SKILL_ID_BITS)
        level_flag = stream.read(SKILL_LEVEL_FLAG_BITS)
        skill_array.append(SkillEntry(skill_id=skill_id, level=2 if level_flag else 1))

    parents = []
    for position in range(1, stream.read(PARENT_COUNT_BITS) + 1):
        parent_card_id = stream.read(CARD_ID_BITS)
        parent_talent = stream.read(TALENT_BITS) + 1
        parents.append(ParentRecord(
            card_id=parent_card_id,
            talent_level=parent_talent,
            factor_id_array=_read_factors(stream),
            position_id=position,
        ))

    return CharaRecord(
        card_id=card_id,
        talent_level=talent_level,
        create_time=placeholders.create_time(),
        rarity=placeholders.rarity,
        chara_seed=placeholders.chara_seed(),
        factor_id_array=factor_id_array,
        skill_array=skill_array,
        succession_chara_array=parents,
        support_card_list=[],
        **stats,
        **aptitudes,
    )


def record_bit_length(record: CharaRecord) -> int:
    """Exact number of bits encode_record writes for this chara."""
    bits = MIN_RECORD_BITS
    bits += FACTOR_COUNT_BITS + FACTOR_ID_BITS * min(len(record.factor_id_array), MAX_FACTORS)
    bits += SKILL_COUNT_BITS + (SKILL_ID_BITS + SKILL_LEVEL_FLAG_BITS) * min(
        len(record.skill_array), MAX_SKILLS)
    bits += PARENT_COUNT_BITS
    for parent in record.succession_chara_array[:MAX_PARENTS]:
        bits += CARD_ID_BITS + TALENT_BITS + FACTOR_COUNT_BITS
        bits += FACTOR_ID_BITS * min(len(parent.factor_id_array), MAX_FACTORS)
    return bits


# =============================================================================
# Roster codec
# =============================================================================

def encode_roster(records: Sequence[CharaRecord], strict: bool = False) -> str:
    """Encode up to MAX_CHARAS records to a URL-safe string.

    With strict=True, any value wider than its field raises BitRangeError
    instead of being masked.
    """
    stream = BitStream(strict=strict)
    stream.write(ENCODING_VERSION, VERSION_BITS)

    kept = list(records)[:MAX_CHARAS]
    stream.write(len(kept), COUNT_BITS)
    for record in kept:
        encode_record(stream, record)

    return stream.to_text()


def decode_roster_result(text: str,
                         placeholders: Optional[PlaceholderProvider] = None,
                         logger: Optional[logging.Logger] = None
                         ) -> RosterDecodeResult:
    """Decode a roster string, reporting version and problems alongside records."""
    logger = logger or log
    placeholders = placeholders or PlaceholderProvider()
    result = RosterDecodeResult()

    try:
        logger.debug("Decoding roster, input length %d", len(text))
        stream = BitStream.from_text(text)
        logger.debug("Stream holds %d bits", len(stream))

        result.version = stream.read(VERSION_BITS)
        if result.version != ENCODING_VERSION:
            message = (f"Encoding version mismatch: expected {ENCODING_VERSION}, "
                       f"got {result.version}")
            logger.warning(message)
            result.warnings.append(message)

        result.count = stream.read(COUNT_BITS)
        logger.debug("Declared chara count: %d", result.count)

        for i in range(result.count):
            record = decode_record(stream, placeholders)
            if record is None:
                logger.debug("Chara %d/%d: out of data, %d bits left",
                             i + 1, result.count, stream.remaining_bits())
                break
            logger.debug("Chara %d/%d decoded: card_id=%d",
                         i + 1, result.count, record.card_id)
            result.records.append(record)

        logger.debug("Decoded %d charas", len(result.records))
    except Exception as e:
        logger.error("Failed to decode roster: %s", e, exc_info=True)
        result.records = []
        result.errors.append(f"Decode failed: {e}")

    return result


def decode_roster(text: str,
                  placeholders: Optional[PlaceholderProvider] = None,
                  logger: Optional[logging.Logger] = None) -> List[CharaRecord]:
    """Decode a roster string. Never raises; returns [] on failure."""
    return decode_roster_result(text, placeholders, logger).records
