# File: livescribe/features/recording/data/webm_metadata.py
"""
Duration and seek-index repair for streamed WebM (Matroska/EBML).

A live recorder writes the Segment and every Cluster with "unknown" size and
never goes back to fill in Info/Duration or a Cues index, so players show no
duration and cannot seek. This module rewrites only container-level fields:

    EBML header | Segment(known size)
        SeekHead -> Info, Tracks, Cues
        Info      (Duration set)
        Tracks    (+ any other pre-cluster elements, unchanged)
        Cues      (one CuePoint per Cluster)
        Cluster*  (header rewritten with known size, body bytes unchanged)

Position fields are written fixed-width so element sizes never depend on the
offsets they encode, which lets the layout be computed in one pass.
"""

import logging
import struct
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from livescribe.core.common.errors import MetadataRepairError
from ..domain.interfaces import IMetadataRepairer

logger = logging.getLogger(__name__)

# --- Element IDs (marker bits included) ---
EBML_HEADER = 0x1A45DFA3
SEGMENT = 0x18538067
SEEK_HEAD = 0x114D9B74
SEEK = 0x4DBB
SEEK_ID = 0x53AB
SEEK_POSITION = 0x53AC
INFO = 0x1549A966
TIMECODE_SCALE = 0x2AD7B1
DURATION = 0x4489
TRACKS = 0x1654AE6B
TRACK_ENTRY = 0xAE
TRACK_NUMBER = 0xD7
CLUSTER = 0x1F43B675
CLUSTER_TIMECODE = 0xE7
SIMPLE_BLOCK = 0xA3
BLOCK_GROUP = 0xA0
BLOCK = 0xA1
CUES = 0x1C53BB6B
CUE_POINT = 0xBB
CUE_TIME = 0xB3
CUE_TRACK_POSITIONS = 0xB7
CUE_TRACK = 0xF7
CUE_CLUSTER_POSITION = 0xF1
VOID = 0xEC
TAGS = 0x1254C367
CHAPTERS = 0x1043A770
ATTACHMENTS = 0x1941A469

TOP_LEVEL_IDS = {SEEK_HEAD, INFO, TRACKS, CLUSTER, CUES, TAGS, CHAPTERS, ATTACHMENTS, SEGMENT, EBML_HEADER}

DEFAULT_TIMECODE_SCALE = 1_000_000  # ns per tick, i.e. 1 ms
UNKNOWN = -1
FIXED_WIDTH = 8


# --- Primitive codec ---

def read_id(data: bytes, pos: int) -> Tuple[int, int]:
    """Returns (element_id, length). IDs keep their marker bits."""
    if pos >= len(data):
        raise MetadataRepairError(f"Unexpected end of data reading element ID at {pos}")
    first = data[pos]
    length = 1
    mask = 0x80
    while length <= 4 and not first & mask:
        mask >>= 1
        length += 1
    if length > 4 or pos + length > len(data):
        raise MetadataRepairError(f"Invalid element ID at {pos}")
    return int.from_bytes(data[pos:pos + length], "big"), length


def read_size(data: bytes, pos: int) -> Tuple[int, int]:
    """Returns (size, length); size is UNKNOWN when all value bits are set."""
    if pos >= len(data):
        raise MetadataRepairError(f"Unexpected end of data reading element size at {pos}")
    first = data[pos]
    length = 1
    mask = 0x80
    while length <= 8 and not first & mask:
        mask >>= 1
        length += 1
    if length > 8 or pos + length > len(data):
        raise MetadataRepairError(f"Invalid element size at {pos}")
    value = first & (mask - 1)
    for b in data[pos + 1:pos + length]:
        value = (value << 8) | b
    if value == (1 << (7 * length)) - 1:
        return UNKNOWN, length
    return value, length


def encode_id(element_id: int) -> bytes:
    return element_id.to_bytes((element_id.bit_length() + 7) // 8, "big")


def encode_size(size: int, width: Optional[int] = None) -> bytes:
    if width is None:
        width = 1
        # all-ones is reserved for "unknown"
        while size >= (1 << (7 * width)) - 1:
            width += 1
    if width > 8 or size >= (1 << (7 * width)) - 1:
        raise MetadataRepairError(f"Size {size} does not fit in {width} bytes")
    return (size | (1 << (7 * width))).to_bytes(width, "big")


def element(element_id: int, payload: bytes, size_width: Optional[int] = None) -> bytes:
    return encode_id(element_id) + encode_size(len(payload), size_width) + payload


def uint_element(element_id: int, value: int, width: Optional[int] = None) -> bytes:
    if width is None:
        width = max(1, (value.bit_length() + 7) // 8)
    return element(element_id, value.to_bytes(width, "big"))


def float_element(element_id: int, value: float) -> bytes:
    return element(element_id, struct.pack(">d", value))


def read_uint(payload: bytes) -> int:
    return int.from_bytes(payload, "big") if payload else 0


def read_float(payload: bytes) -> float:
    if len(payload) == 4:
        return struct.unpack(">f", payload)[0]
    if len(payload) == 8:
        return struct.unpack(">d", payload)[0]
    if not payload:
        return 0.0
    raise MetadataRepairError(f"Invalid float length {len(payload)}")


# --- Tree walking ---

@dataclass
class Element:
    id: int
    start: int        # offset of the ID
    data_start: int   # offset of the payload
    end: int          # offset one past the payload

    def payload(self, data: bytes) -> bytes:
        return data[self.data_start:self.end]


def iter_children(data: bytes, start: int, end: int) -> List[Element]:
    """Children of a master element. A truncated last child is dropped."""
    out = []
    pos = start
    while pos < end:
        try:
            element_id, id_len = read_id(data, pos)
            size, size_len = read_size(data, pos + id_len)
        except MetadataRepairError:
            break
        data_start = pos + id_len + size_len
        child_end = end if size == UNKNOWN else min(data_start + size, end)
        out.append(Element(element_id, pos, data_start, child_end))
        pos = child_end
    return out


def _unknown_size_end(data: bytes, start: int, limit: int) -> int:
    """End of an unknown-size Cluster: the next top-level ID or the limit."""
    pos = start
    while pos < limit:
        try:
            element_id, id_len = read_id(data, pos)
            if element_id in TOP_LEVEL_IDS:
                return pos
            size, size_len = read_size(data, pos + id_len)
        except MetadataRepairError:
            return limit
        if size == UNKNOWN:
            return limit
        pos = min(pos + id_len + size_len + size, limit)
    return limit


def iter_top_level(data: bytes, start: int, end: int) -> List[Element]:
    out = []
    pos = start
    while pos < end:
        try:
            element_id, id_len = read_id(data, pos)
            size, size_len = read_size(data, pos + id_len)
        except MetadataRepairError:
            logger.warning(f"Truncated element at {pos}, ignoring trailing bytes")
            break
        data_start = pos + id_len + size_len
        if size == UNKNOWN:
            child_end = _unknown_size_end(data, data_start, end) if element_id == CLUSTER else end
        else:
            child_end = min(data_start + size, end)
        out.append(Element(element_id, pos, data_start, child_end))
        pos = child_end
    return out


# --- Inspection ---

@dataclass
class WebmInfo:
    timecode_scale: int = DEFAULT_TIMECODE_SCALE
    duration: Optional[float] = None   # in timecode_scale ticks
    cluster_timecodes: List[int] = field(default_factory=list)
    cue_times: List[int] = field(default_factory=list)
    # CueClusterPosition values, relative to segment_data_start
    cue_positions: List[int] = field(default_factory=list)
    segment_data_start: int = 0
    has_seek_head: bool = False

    @property
    def duration_ms(self) -> Optional[float]:
        if self.duration is None:
            return None
        return self.duration * self.timecode_scale / 1_000_000


def _segment_bounds(data: bytes) -> Tuple[Element, Element]:
    top = iter_top_level(data, 0, len(data))
    if not top or top[0].id != EBML_HEADER:
        raise MetadataRepairError("Not a WebM/Matroska stream (missing EBML header)")
    header = top[0]
    segment = next((e for e in top[1:] if e.id == SEGMENT), None)
    if segment is None:
        raise MetadataRepairError("No Segment element found")
    return header, segment


def inspect(data: bytes) -> WebmInfo:
    """Reads the container-level fields the repair touches."""
    _, segment = _segment_bounds(data)
    info = WebmInfo(segment_data_start=segment.data_start)
    for child in iter_top_level(data, segment.data_start, segment.end):
        if child.id == INFO:
            for field_el in iter_children(data, child.data_start, child.end):
                if field_el.id == TIMECODE_SCALE:
                    info.timecode_scale = read_uint(field_el.payload(data))
                elif field_el.id == DURATION:
                    info.duration = read_float(field_el.payload(data))
        elif child.id == CLUSTER:
            info.cluster_timecodes.append(_cluster_timecode(data, child))
        elif child.id == CUES:
            for point in iter_children(data, child.data_start, child.end):
                for cue_field in iter_children(data, point.data_start, point.end):
                    if cue_field.id == CUE_TIME:
                        info.cue_times.append(read_uint(cue_field.payload(data)))
                    elif cue_field.id == CUE_TRACK_POSITIONS:
                        for pos_field in iter_children(data, cue_field.data_start, cue_field.end):
                            if pos_field.id == CUE_CLUSTER_POSITION:
                                info.cue_positions.append(read_uint(pos_field.payload(data)))
        elif child.id == SEEK_HEAD:
            info.has_seek_head = True
    return info


def _cluster_timecode(data: bytes, cluster: Element) -> int:
    for child in iter_children(data, cluster.data_start, cluster.end):
        if child.id == CLUSTER_TIMECODE:
            return read_uint(child.payload(data))
    return 0


def _last_block_offset(data: bytes, cluster: Element) -> int:
    """Relative timecode (ticks) of the last block in a cluster."""
    last = 0
    for child in iter_children(data, cluster.data_start, cluster.end):
        block = None
        if child.id == SIMPLE_BLOCK:
            block = child
        elif child.id == BLOCK_GROUP:
            block = next((c for c in iter_children(data, child.data_start, child.end) if c.id == BLOCK), None)
        if block is None:
            continue
        _, track_len = read_size(data, block.data_start)
        pos = block.data_start + track_len
        if pos + 2 <= block.end:
            last = struct.unpack(">h", data[pos:pos + 2])[0]
    return last


def _first_track_number(data: bytes, tracks: Optional[Element]) -> int:
    if tracks is None:
        return 1
    for entry in iter_children(data, tracks.data_start, tracks.end):
        if entry.id != TRACK_ENTRY:
            continue
        for child in iter_children(data, entry.data_start, entry.end):
            if child.id == TRACK_NUMBER:
                return read_uint(child.payload(data))
    return 1


# --- Writing ---

def _build_info(data: bytes, info: Optional[Element], duration_ticks: float) -> bytes:
    parts = []
    if info is not None:
        for child in iter_children(data, info.data_start, info.end):
            if child.id in (DURATION, VOID):
                continue
            parts.append(data[child.start:child.end])
    else:
        parts.append(uint_element(TIMECODE_SCALE, DEFAULT_TIMECODE_SCALE))
    parts.append(float_element(DURATION, duration_ticks))
    return element(INFO, b"".join(parts))


def _build_seek_head(positions: List[Tuple[int, int]]) -> bytes:
    seeks = b"".join(
        element(SEEK, element(SEEK_ID, encode_id(target)) + uint_element(SEEK_POSITION, pos, FIXED_WIDTH))
        for target, pos in positions
    )
    return element(SEEK_HEAD, seeks)


def _build_cues(track: int, points: List[Tuple[int, int]]) -> bytes:
    body = b"".join(
        element(CUE_POINT,
                uint_element(CUE_TIME, time, FIXED_WIDTH)
                + element(CUE_TRACK_POSITIONS,
                          uint_element(CUE_TRACK, track)
                          + uint_element(CUE_CLUSTER_POSITION, pos, FIXED_WIDTH)),
                size_width=FIXED_WIDTH)
        for time, pos in points
    )
    return element(CUES, body, size_width=FIXED_WIDTH)


def repair(data: bytes, duration_ms: float) -> bytes:
    """
    Returns a copy of `data` with Duration, Cues and SeekHead written.
    `duration_ms` <= 0 falls back to the last block's timestamp.
    """
    header, segment = _segment_bounds(data)
    children = iter_top_level(data, segment.data_start, segment.end)

    info = next((c for c in children if c.id == INFO), None)
    tracks = next((c for c in children if c.id == TRACKS), None)
    clusters = [c for c in children if c.id == CLUSTER]

    timecode_scale = DEFAULT_TIMECODE_SCALE
    if info is not None:
        for child in iter_children(data, info.data_start, info.end):
            if child.id == TIMECODE_SCALE:
                timecode_scale = read_uint(child.payload(data)) or DEFAULT_TIMECODE_SCALE

    if duration_ms <= 0 and clusters:
        last = clusters[-1]
        ticks = _cluster_timecode(data, last) + _last_block_offset(data, last)
        duration_ms = ticks * timecode_scale / 1_000_000
    duration_ms = max(duration_ms, 1.0)
    duration_ticks = duration_ms * 1_000_000 / timecode_scale

    # Everything before the first cluster except what gets rebuilt
    first_cluster = clusters[0].start if clusters else segment.end
    preamble = [
        data[c.start:c.end] for c in children
        if c.start < first_cluster and c.id not in (SEEK_HEAD, INFO, CUES, VOID, TRACKS)
    ]
    tracks_bytes = data[tracks.start:tracks.end] if tracks is not None else b""

    # Body: clusters with known-size headers, trailing top-level elements kept
    body_parts = []
    cluster_offsets = []
    cluster_times = []
    body_len = 0
    for child in children:
        if child.start < first_cluster or child.id in (SEEK_HEAD, INFO, TRACKS, CUES, VOID):
            continue
        if child.id == CLUSTER:
            raw = element(CLUSTER, child.payload(data), size_width=FIXED_WIDTH)
            cluster_offsets.append(body_len)
            cluster_times.append(_cluster_timecode(data, child))
        else:
            raw = data[child.start:child.end]
        body_parts.append(raw)
        body_len += len(raw)

    track_number = _first_track_number(data, tracks)
    info_bytes = _build_info(data, info, duration_ticks)

    # Fixed-width fields make these sizes independent of the values
    targets = [INFO, TRACKS, CUES] if tracks is not None else [INFO, CUES]
    seek_len = len(_build_seek_head([(t, 0) for t in targets]))
    cues_len = len(_build_cues(track_number, [(t, 0) for t in cluster_times]))

    info_pos = seek_len
    tracks_pos = info_pos + len(info_bytes)
    preamble_len = sum(len(p) for p in preamble)
    cues_pos = tracks_pos + len(tracks_bytes) + preamble_len
    body_pos = cues_pos + cues_len

    positions = {INFO: info_pos, TRACKS: tracks_pos, CUES: cues_pos}
    seek_bytes = _build_seek_head([(t, positions[t]) for t in targets])
    cues_bytes = _build_cues(track_number, [
        (time, body_pos + offset) for time, offset in zip(cluster_times, cluster_offsets)
    ])

    segment_payload = b"".join([seek_bytes, info_bytes, tracks_bytes, *preamble, cues_bytes, *body_parts])
    out = data[header.start:header.end] + element(SEGMENT, segment_payload, size_width=FIXED_WIDTH)

    logger.info(
        f"WebM repaired: duration={duration_ms:.0f}ms, clusters={len(clusters)}, "
        f"size {len(data)} -> {len(out)} bytes"
    )
    return out


def is_webm(data: bytes) -> bool:
    return data[:4] == encode_id(EBML_HEADER)


class EbmlMetadataRepairer(IMetadataRepairer):
    def repair(self, data: bytes, duration_ms: float) -> bytes:
        return repair(data, duration_ms)
