from typing import List, Optional, Tuple

import cv2

from .common import rect_from_xyxy
from .geometry import Polygon, Rect, collision_detect


class Detection:
    def __init__(self, bbox: Rect, tracking_id: Optional[int] = None):
        self.bbox = bbox
        self.tracking_id = tracking_id

    def __repr__(self) -> str:
        return f"Detection({self.bbox}, tracking_id={self.tracking_id})"

    @classmethod
    def from_dict(cls, data: dict) -> 'Detection':
        return cls(rect_from_xyxy(data["bbox"]), data.get("tracking_id"))

    def in_zone(self, zone: Polygon) -> bool:
        return collision_detect(zone, self.bbox)


def mark_roi_hits(frames: List[dict], zone: Polygon) -> List[dict]:
    """
    Adds "roi_hit" to every detection of every frame.

    Frames look like {"frame": 12, "data": [{"tracking_id": 3, "bbox": [x1, y1, x2, y2]}]}.
    The input is left untouched, new dicts are returned.
    """
    marked_frames = []
    for frame in frames:
        marked_data = []
        for item in frame.get("data", []):
            hit = Detection.from_dict(item).in_zone(zone)
            marked_data.append({**item, "roi_hit": hit})
        marked_frames.append({**frame, "data": marked_data})
    return marked_frames


def hit_intervals(frames: List[dict]) -> List[Tuple[int, int]]:
    """Inclusive (start, end) runs of consecutive frames with at least one ROI hit"""
    hit_frames = sorted(
        frame["frame"] for frame in frames
        if any(item.get("roi_hit") for item in frame.get("data", []))
    )

    intervals = []
    for number in hit_frames:
        if intervals and number <= intervals[-1][1] + 1:
            intervals[-1] = (intervals[-1][0], number)
        else:
            intervals.append((number, number))
    return intervals


def get_video_fps(video_path: str) -> float:
    cap = cv2.VideoCapture(video_path)
    try:
        if not cap.isOpened():
            raise ValueError(f"Can't open video: {video_path}")
        fps = cap.get(cv2.CAP_PROP_FPS)
    finally:
        cap.release()

    if not fps or fps <= 0:
        raise ValueError(f"Video reports no FPS: {video_path}")
    return fps


def format_time(seconds):
    """Seconds as MM:SS.mmm, HH:MM:SS.mmm past an hour"""
    if seconds is None:
        return "N/A"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:06.3f}"
    return f"{minutes:02d}:{secs:06.3f}"


def frame_intervals_to_string(intervals: List[Tuple[int, int]], fps: float) -> str:
    if fps <= 0:
        raise ValueError("fps must be positive")

    result = ""
    for start, end in intervals:
        result += f"from: {format_time(round(start / fps, 3))}, to: {format_time(round(end / fps, 3))}; "
    return result
