from celery.utils.log import get_task_logger

from roi_worker.celery import app
from roi_zones.common import InvalidRoiError, parse_roi, rect_from_xyxy
from roi_zones.frames import frame_intervals_to_string, get_video_fps, hit_intervals, mark_roi_hits
from roi_zones.geometry import collision_detect

logger = get_task_logger(__name__)


@app.task
def task_mark_roi_hits(frames_data, roi, fps=None, video_path=None):
    try:
        zone = parse_roi(roi)
        frames = mark_roi_hits(frames_data, zone)
    except InvalidRoiError as e:
        logger.error("Invalid ROI or detection box: %s", e)
        return {"ok": False, "error": str(e), "frames": frames_data, "intervals": [], "timings": None}

    intervals = [[start, end] for start, end in hit_intervals(frames)]
    logger.info("Marked %d frames, %d ROI intervals", len(frames), len(intervals))

    if fps is None and video_path is not None:
        fps = get_video_fps(video_path)
    timings = frame_intervals_to_string(intervals, fps) if fps else None

    return {"ok": True, "frames": frames, "intervals": intervals, "timings": timings}


@app.task
def task_check_boxes(roi, boxes):
    try:
        zone = parse_roi(roi)
        hits = [collision_detect(zone, rect_from_xyxy(box)) for box in boxes]
    except InvalidRoiError as e:
        logger.error("Invalid ROI or detection box: %s", e)
        return {"ok": False, "error": str(e), "hits": []}

    return {"ok": True, "hits": hits}
