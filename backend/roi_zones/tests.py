from unittest import TestCase
from unittest.mock import patch

import numpy as np

from .annotate import HIT_COLOR, MISS_COLOR, ZONE_COLOR, draw_detection, draw_zone
from .common import InvalidRoiError, parse_points, parse_roi, rect_from_xyxy
from .frames import (
    Detection,
    format_time,
    frame_intervals_to_string,
    get_video_fps,
    hit_intervals,
    mark_roi_hits,
)
from .geometry import (
    Point,
    Polygon,
    Rect,
    Vector,
    bounding_boxes_disjoint,
    collision_detect,
    rect_to_points,
)
from roi_worker import settings
from roi_worker.celery import app
from tasks import task_check_boxes, task_mark_roi_hits

TRIANGLE = [Point(200, 0), Point(200, 200), Point(0, 200)]


class VectorPointTests(TestCase):
    def test_dot(self):
        self.assertEqual(Vector(2, 3).dot(Vector(4, -5)), -7)

    def test_normal_is_right_perpendicular(self):
        v = Vector(3, 4)
        self.assertEqual(v.normal(), Vector(4, -3))
        self.assertEqual(v.dot(v.normal()), 0)

    def test_point_subtraction(self):
        self.assertEqual(Point(5, 7) - Point(2, 10), Vector(3, -3))

    def test_point_to_vector(self):
        self.assertEqual(Point(-4, 9).to_vector(), Vector(-4, 9))

    def test_large_coordinates_do_not_overflow(self):
        big = 2 ** 40
        self.assertEqual(Vector(big, big).dot(Vector(big, big)), 2 * big * big)


class RectTests(TestCase):
    def test_rect_to_points_clockwise(self):
        points = rect_to_points(Rect(10, 20, 30, 40))
        self.assertEqual(points, [Point(10, 20), Point(40, 20), Point(40, 60), Point(10, 60)])

    def test_from_corners_any_order(self):
        self.assertEqual(Rect.from_corners(40, 60, 10, 20), Rect(10, 20, 30, 40))

    def test_normalized(self):
        self.assertEqual(Rect(100, 100, -100, -50).normalized(), Rect(0, 50, 100, 50))
        rect = Rect(1, 2, 3, 4)
        self.assertIs(rect.normalized(), rect)


class PolygonTests(TestCase):
    def setUp(self):
        self.triangle = Polygon(TRIANGLE)

    def test_edges_wrap_around(self):
        self.assertEqual(
            self.triangle.get_edges(),
            [Vector(0, 200), Vector(-200, 0), Vector(200, -200)],
        )

    def test_axes_are_not_normalized(self):
        self.assertEqual(
            self.triangle.get_axes(),
            [Vector(200, 0), Vector(0, 200), Vector(-200, -200)],
        )

    def test_rect_uses_two_leading_edges(self):
        square = Polygon.from_rect(Rect(0, 0, 10, 20))
        self.assertEqual(square.get_axes(2), [Vector(0, -10), Vector(20, 0)])

    def test_project_onto_axis(self):
        self.assertEqual(self.triangle.project_onto_axis(Vector(-200, -200)), (-80000, -40000))

    def test_bounding_box(self):
        self.assertEqual(self.triangle.bounding_box(), (0, 0, 200, 200))


class CollisionDetectTests(TestCase):
    def test_corner_on_hypotenuse(self):
        self.assertTrue(collision_detect(TRIANGLE, Rect(0, 0, 100, 100)))

    def test_separated_by_roi_edge(self):
        rect = Rect(50, 50, 40, 40)
        self.assertFalse(bounding_boxes_disjoint(Polygon(TRIANGLE), rect))
        self.assertFalse(collision_detect(TRIANGLE, rect))

    def test_outside_bounding_box(self):
        self.assertFalse(collision_detect(TRIANGLE, Rect(201, 101, 50, 50)))

    def test_inside(self):
        self.assertTrue(collision_detect(TRIANGLE, Rect(180, 100, 50, 50)))

    def test_rect_contains_roi(self):
        self.assertTrue(collision_detect(TRIANGLE, Rect(-10, -10, 300, 300)))

    def test_touching_vertex(self):
        self.assertTrue(collision_detect(TRIANGLE, Rect(200, 200, 10, 10)))

    def test_touching_edge(self):
        self.assertTrue(collision_detect(TRIANGLE, Rect(200, 50, 10, 20)))
        self.assertFalse(collision_detect(TRIANGLE, Rect(201, 50, 10, 20)))

    def test_degenerate_rect(self):
        self.assertTrue(collision_detect(TRIANGLE, Rect(150, 150, 0, 0)))
        self.assertFalse(collision_detect(TRIANGLE, Rect(10, 10, 0, 0)))

    def test_negative_size_is_normalized(self):
        self.assertTrue(collision_detect(TRIANGLE, Rect(230, 150, -50, -50)))
        self.assertFalse(collision_detect(TRIANGLE, Rect(90, 90, -40, -40)))

    def test_accepts_polygon(self):
        self.assertTrue(collision_detect(Polygon(TRIANGLE), Rect(180, 100, 50, 50)))

    def test_counter_clockwise_roi(self):
        roi = list(reversed(TRIANGLE))
        self.assertTrue(collision_detect(roi, Rect(180, 100, 50, 50)))
        self.assertFalse(collision_detect(roi, Rect(50, 50, 40, 40)))

    def test_too_few_points(self):
        with self.assertLogs("roi_zones.geometry", level="WARNING") as logs:
            self.assertFalse(collision_detect([Point(0, 0), Point(10, 10)], Rect(0, 0, 5, 5)))
        self.assertIn("roi points must be >= 3", logs.output[0])
        self.assertTrue(collision_detect(TRIANGLE, Rect(180, 100, 50, 50)))

    def test_repeated_calls_same_result(self):
        rect = Rect(0, 0, 100, 100)
        results = {collision_detect(TRIANGLE, rect) for _ in range(5)}
        self.assertEqual(results, {True})

    def test_prefilter_skips_projection(self):
        with patch.object(Polygon, "project_onto_axis") as mock_project:
            self.assertFalse(collision_detect(TRIANGLE, Rect(201, 101, 50, 50)))
        mock_project.assert_not_called()

    def test_prefilter_agrees_with_full_test(self):
        outside = [Rect(201, 101, 50, 50), Rect(-60, 10, 50, 50), Rect(10, 201, 5, 5), Rect(10, -30, 5, 5)]
        for rect in outside:
            self.assertTrue(bounding_boxes_disjoint(Polygon(TRIANGLE), rect))
            with patch("roi_zones.geometry.bounding_boxes_disjoint", return_value=False):
                self.assertFalse(collision_detect(TRIANGLE, rect))

    def test_checks_roi_edges_plus_two_axes(self):
        with patch.object(
            Polygon, "project_onto_axis", autospec=True, side_effect=Polygon.project_onto_axis
        ) as mock_project:
            self.assertTrue(collision_detect(TRIANGLE, Rect(180, 100, 50, 50)))
        # 3 roi axes + 2 rect axes, both shapes projected on each
        self.assertEqual(mock_project.call_count, 10)


class CommonTests(TestCase):
    def test_parse_points(self):
        self.assertEqual(parse_points([[1, 2], (3, 4)]), [Point(1, 2), Point(3, 4)])
        self.assertEqual(parse_points("[[1, 2], [3, 4]]"), [Point(1, 2), Point(3, 4)])
        self.assertEqual(parse_points([[np.int64(5), np.int32(6)]]), [Point(5, 6)])

    def test_parse_numpy_points(self):
        points = np.array([[200, 0], [200, 200], [0, 200]], dtype=np.int32)
        self.assertEqual(parse_points(points), TRIANGLE)
        self.assertEqual(parse_roi(points), Polygon(TRIANGLE))
        for bad in [np.array([1, 2, 3, 4]), np.array([[1, 2, 3]]), np.array([[1.5, 2.0]])]:
            with self.assertRaises(InvalidRoiError):
                parse_points(bad)

    def test_parse_points_invalid(self):
        for points in ["[[1, 2", [[1, 2, 3]], [[1.5, 2]], [[True, 2]], {"x": 1}]:
            with self.assertRaises(InvalidRoiError):
                parse_points(points)

    def test_parse_roi_forms(self):
        expected = Polygon(TRIANGLE)
        self.assertEqual(parse_roi([[200, 0], [200, 200], [0, 200]]), expected)
        self.assertEqual(parse_roi('{"type": "polygon", "points": [[200, 0], [200, 200], [0, 200]]}'), expected)
        self.assertIs(parse_roi(expected), expected)

    def test_parse_rect_roi(self):
        roi = parse_roi({"type": "rect", "points": [[40, 60], [10, 20]]})
        self.assertEqual(roi, Polygon.from_rect(Rect(10, 20, 30, 40)))

    def test_parse_roi_invalid(self):
        for roi in [{"type": "circle", "points": []}, {"type": "polygon"},
                    {"type": "rect", "points": [[0, 0]]}, "not json"]:
            with self.assertRaises(InvalidRoiError):
                parse_roi(roi)

    def test_rect_from_xyxy(self):
        self.assertEqual(rect_from_xyxy(np.array([10.7, 20.2, 40.9, 60.0])), Rect(10, 20, 30, 40))
        self.assertEqual(rect_from_xyxy([40, 60, 10, 20]), Rect(10, 20, 30, 40))
        with self.assertRaises(InvalidRoiError):
            rect_from_xyxy([1, 2, 3])


class FramesTests(TestCase):
    def setUp(self):
        self.zone = Polygon(TRIANGLE)
        self.frames = [
            {"frame": 1, "data": [{"tracking_id": 1, "bbox": [180, 100, 230, 150]}]},
            {"frame": 2, "data": [{"tracking_id": 1, "bbox": [185, 100, 235, 150]},
                                  {"tracking_id": 2, "bbox": [50, 50, 90, 90]}]},
            {"frame": 3, "data": [{"tracking_id": 2, "bbox": [50, 50, 90, 90]}]},
            {"frame": 4, "data": []},
            {"frame": 5, "data": [{"tracking_id": 3, "bbox": [0, 0, 100, 100]}]},
        ]

    def test_detection_in_zone(self):
        detection = Detection.from_dict({"tracking_id": 7, "bbox": [180, 100, 230, 150]})
        self.assertEqual(detection.tracking_id, 7)
        self.assertTrue(detection.in_zone(self.zone))
        self.assertFalse(Detection(Rect(50, 50, 40, 40)).in_zone(self.zone))

    def test_mark_roi_hits(self):
        marked = mark_roi_hits(self.frames, self.zone)
        hits = [[item["roi_hit"] for item in frame["data"]] for frame in marked]
        self.assertEqual(hits, [[True], [True, False], [False], [], [True]])
        self.assertEqual(marked[1]["data"][1]["tracking_id"], 2)
        self.assertNotIn("roi_hit", self.frames[0]["data"][0])

    def test_hit_intervals(self):
        marked = mark_roi_hits(self.frames, self.zone)
        self.assertEqual(hit_intervals(marked), [(1, 2), (5, 5)])
        self.assertEqual(hit_intervals([]), [])

    def test_format_time(self):
        self.assertEqual(format_time(None), "N/A")
        self.assertEqual(format_time(61.5), "01:01.500")
        self.assertEqual(format_time(3661.25), "01:01:01.250")

    def test_frame_intervals_to_string(self):
        self.assertEqual(
            frame_intervals_to_string([(25, 50), (100, 125)], 25),
            "from: 00:01.000, to: 00:02.000; from: 00:04.000, to: 00:05.000; ",
        )
        with self.assertRaises(ValueError):
            frame_intervals_to_string([(1, 2)], 0)

    @patch("roi_zones.frames.cv2.VideoCapture")
    def test_get_video_fps(self, mock_capture):
        mock_capture.return_value.isOpened.return_value = True
        mock_capture.return_value.get.return_value = 30.0
        self.assertEqual(get_video_fps("video.mp4"), 30.0)
        mock_capture.return_value.release.assert_called_once()

    @patch("roi_zones.frames.cv2.VideoCapture")
    def test_get_video_fps_unopened(self, mock_capture):
        mock_capture.return_value.isOpened.return_value = False
        with self.assertRaises(ValueError):
            get_video_fps("missing.mp4")
        mock_capture.return_value.release.assert_called_once()


class AnnotateTests(TestCase):
    def setUp(self):
        self.frame = np.zeros((240, 240, 3), dtype=np.uint8)

    def test_draw_zone(self):
        draw_zone(self.frame, Polygon(TRIANGLE))
        self.assertEqual(tuple(self.frame[100, 200]), ZONE_COLOR)
        self.assertEqual(tuple(self.frame[50, 50]), (0, 0, 0))

    def test_draw_detection_colors(self):
        draw_detection(self.frame, Detection(Rect(10, 20, 30, 40)), hit=True)
        self.assertEqual(tuple(self.frame[40, 10]), HIT_COLOR)
        draw_detection(self.frame, Detection(Rect(100, 100, 30, 40)), hit=False)
        self.assertEqual(tuple(self.frame[120, 100]), MISS_COLOR)


class CeleryTasksTests(TestCase):
    def setUp(self):
        self.roi = {"type": "polygon", "points": [[200, 0], [200, 200], [0, 200]]}
        self.frames = [
            {"frame": 25, "data": [{"tracking_id": 1, "bbox": [180, 100, 230, 150]}]},
            {"frame": 26, "data": [{"tracking_id": 1, "bbox": [182, 100, 232, 150]}]},
            {"frame": 30, "data": [{"tracking_id": 2, "bbox": [50, 50, 90, 90]}]},
        ]

    def test_app_config(self):
        self.assertEqual(app.conf.task_serializer, "json")
        self.assertEqual(app.conf.broker_url, settings.CELERY_BROKER_URL)

    def test_task_mark_roi_hits(self):
        result = task_mark_roi_hits(self.frames, self.roi, fps=25)
        self.assertTrue(result["ok"])
        self.assertEqual(result["intervals"], [[25, 26]])
        self.assertEqual(result["timings"], "from: 00:01.000, to: 00:01.040; ")
        self.assertFalse(result["frames"][2]["data"][0]["roi_hit"])

    def test_task_mark_roi_hits_without_fps(self):
        result = task_mark_roi_hits(self.frames, self.roi)
        self.assertTrue(result["ok"])
        self.assertIsNone(result["timings"])

    @patch("tasks.get_video_fps")
    def test_task_mark_roi_hits_reads_video_fps(self, mock_fps):
        mock_fps.return_value = 25.0
        result = task_mark_roi_hits(self.frames, self.roi, video_path="/tmp/video.mp4")
        mock_fps.assert_called_once_with("/tmp/video.mp4")
        self.assertEqual(result["timings"], "from: 00:01.000, to: 00:01.040; ")

    def test_task_mark_roi_hits_invalid_roi(self):
        result = task_mark_roi_hits(self.frames, {"type": "circle", "points": []})
        self.assertFalse(result["ok"])
        self.assertIn("circle", result["error"])
        self.assertEqual(result["intervals"], [])

    def test_task_check_boxes(self):
        boxes = [[0, 0, 100, 100], [50, 50, 90, 90], [201, 101, 251, 151], [180, 100, 230, 150]]
        result = task_check_boxes(self.roi, boxes)
        self.assertTrue(result["ok"])
        self.assertEqual(result["hits"], [True, False, False, True])

    def test_task_mark_roi_hits_malformed_bbox(self):
        frames = [{"frame": 1, "data": [{"tracking_id": 1, "bbox": [1, 2, 3]}]}]
        result = task_mark_roi_hits(frames, self.roi)
        self.assertFalse(result["ok"])
        self.assertIn("Box must be", result["error"])
        self.assertEqual(result["frames"], frames)
        self.assertEqual(result["intervals"], [])

    def test_task_check_boxes_invalid_roi(self):
        result = task_check_boxes({"type": "circle", "points": []}, [[0, 0, 10, 10]])
        self.assertFalse(result["ok"])
        self.assertIn("circle", result["error"])
        self.assertEqual(result["hits"], [])

    def test_task_check_boxes_malformed_box(self):
        result = task_check_boxes(self.roi, [[0, 0, 100, 100], [1, 2]])
        self.assertFalse(result["ok"])
        self.assertIn("Box must be", result["error"])
