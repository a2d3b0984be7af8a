import unittest
import numpy as np
from config import ConfigurationError
from visualization import Camera
from visual_effects import StarField, build_constellation_segments

class TestCamera(unittest.TestCase):

    def setUp(self):
        self.camera = Camera(800, 600, pixels_per_unit=2.0, min_zoom=0.1, max_zoom=10.0)

    def test_origin_at_screen_center(self):
        self.assertEqual(self.camera.world_to_screen((0.0, 0.0, 0.0)), (400, 300))

    def test_y_axis_points_up(self):
        x, y = self.camera.world_to_screen((10.0, 10.0, 5.0))
        self.assertEqual((x, y), (420, 280))

    def test_vectorised_matches_scalar(self):
        points = np.array([[1.0, 2.0, 0.0], [-30.0, 4.5, 1.0], [100.0, -100.0, 0.0]])
        many = self.camera.world_to_screen_many(points)
        for point, screen in zip(points, many):
            self.assertEqual(tuple(screen), self.camera.world_to_screen(point))

    def test_screen_to_world_inverse(self):
        self.camera.zoom_by(3.0)
        self.camera.pan_pixels(50, -20)
        world = np.array([12.5, -7.25])
        screen = self.camera.world_to_screen(world)
        np.testing.assert_array_almost_equal(self.camera.screen_to_world(screen), world, decimal=1)

    def test_zoom_clamped(self):
        self.camera.zoom_by(1000.0)
        self.assertEqual(self.camera.zoom, 10.0)
        self.camera.zoom_by(1e-6)
        self.assertEqual(self.camera.zoom, 0.1)

    def test_zoom_keeps_anchor_fixed(self):
        anchor = (600, 100)
        before = self.camera.screen_to_world(anchor)
        self.camera.zoom_by(2.0, anchor)
        np.testing.assert_array_almost_equal(self.camera.screen_to_world(anchor), before)

    def test_pan_drags_scene(self):
        self.camera.pan_pixels(20, 0)
        self.assertEqual(self.camera.world_to_screen((0.0, 0.0)), (420, 300))
        self.camera.reset()
        self.assertEqual(self.camera.world_to_screen((0.0, 0.0)), (400, 300))

    def test_radius_at_least_one_pixel(self):
        self.assertEqual(self.camera.radius_to_pixels(0.0001), 1)
        self.assertEqual(self.camera.radius_to_pixels(5.0), 10)

    def test_far_points_clipped(self):
        screen = self.camera.world_to_screen_many(np.array([[1e12, -1e12, 0.0]]))
        self.assertTrue(np.all(np.abs(screen) <= 30000))

    def test_visibility(self):
        self.assertTrue(self.camera.is_visible((400, 300)))
        self.assertFalse(self.camera.is_visible((-50, 300), radius_px=10))
        self.assertTrue(self.camera.is_visible((-5, 300), radius_px=10))

    def test_invalid_settings(self):
        with self.assertRaises(ConfigurationError):
            Camera(800, 600, pixels_per_unit=0.0)
        with self.assertRaises(ConfigurationError):
            Camera(800, 600, min_zoom=5.0, max_zoom=1.0)


class TestStarField(unittest.TestCase):

    def test_segments_link_nearby_stars(self):
        positions = np.array([[0.0, 0.0], [5.0, 0.0], [500.0, 500.0], [3.0, 4.0]])
        segments = build_constellation_segments(positions, group_count=4, threshold=10.0)
        self.assertIn((0, 1), segments)
        self.assertIn((0, 3), segments)
        self.assertNotIn((0, 2), segments)

    def test_segments_link_limit(self):
        positions = np.zeros((10, 2))
        segments = build_constellation_segments(positions, group_count=1, max_links=3, threshold=1.0)
        self.assertEqual(segments, [(0, 1), (0, 2), (0, 3)])

    def test_degenerate_inputs(self):
        self.assertEqual(build_constellation_segments(np.zeros((1, 2)), 5), [])
        self.assertEqual(build_constellation_segments(np.zeros((10, 2)), 0), [])

    def test_seeded_starfield_is_reproducible(self):
        a = StarField(640, 480, star_count=100, constellation_count=5, seed=7)
        b = StarField(640, 480, star_count=100, constellation_count=5, seed=7)
        np.testing.assert_array_equal(a.star_layers[0]['pos'], b.star_layers[0]['pos'])
        self.assertEqual(a.constellation_segments, b.constellation_segments)

    def test_stars_inside_screen(self):
        field = StarField(640, 480, star_count=200, seed=1)
        for layer in field.star_layers:
            self.assertTrue(np.all(layer['pos'][:, 0] < 640))
            self.assertTrue(np.all(layer['pos'][:, 1] < 480))


if __name__ == '__main__':
    unittest.main()
