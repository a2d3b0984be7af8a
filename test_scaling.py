import unittest
import numpy as np
from config import AU_KM, AU_SCALE, KM_SCALE, ConfigurationError
from scaling import to_display_distance, km_to_display, visual_radius, display_to_au

class TestDisplayDistance(unittest.TestCase):

    def test_scalar_au(self):
        self.assertAlmostEqual(to_display_distance(1.0), AU_SCALE)
        self.assertAlmostEqual(to_display_distance(0.0), 0.0)
        self.assertAlmostEqual(to_display_distance(-2.5), -2.5 * AU_SCALE)

    def test_vector_au(self):
        result = to_display_distance(np.array([1.0, -0.5, 0.25]))
        np.testing.assert_array_almost_equal(result, [100.0, -50.0, 25.0])

    def test_list_input_becomes_array(self):
        result = to_display_distance([1.0, 2.0, 3.0])
        self.assertIsInstance(result, np.ndarray)
        np.testing.assert_array_almost_equal(result, [100.0, 200.0, 300.0])

    def test_relative_distances_preserved(self):
        a, b = np.array([0.4, 0.0, 0.0]), np.array([5.2, 0.0, 0.0])
        ratio_au = np.linalg.norm(b) / np.linalg.norm(a)
        ratio_display = np.linalg.norm(to_display_distance(b)) / np.linalg.norm(to_display_distance(a))
        self.assertAlmostEqual(ratio_au, ratio_display)

    def test_display_to_au_inverse(self):
        self.assertAlmostEqual(display_to_au(to_display_distance(1.523)), 1.523)


class TestKmToDisplay(unittest.TestCase):

    def test_one_au_in_km(self):
        self.assertAlmostEqual(km_to_display(AU_KM), AU_SCALE)

    def test_scale_constant(self):
        self.assertAlmostEqual(KM_SCALE, AU_SCALE / AU_KM)

    def test_lunar_distance(self):
        # ~384400 km is ~0.257 display units at 100 units per AU
        self.assertAlmostEqual(km_to_display(384400.0), 0.25696, places=4)


class TestVisualRadius(unittest.TestCase):

    def test_small_body_clamped(self):
        # Mercury's true scaled radius is ~0.0016 display units
        self.assertEqual(visual_radius(2439.7, 0.5), 0.5)

    def test_identity_above_clamp(self):
        min_size = 0.01
        radius = visual_radius(69911.0, min_size)  # Jupiter, ~0.0467
        self.assertAlmostEqual(radius, 69911.0 * KM_SCALE)
        self.assertGreater(radius, min_size)

    def test_never_below_min_size(self):
        for radius_km in (0.001, 1.0, 1737.4, 6371.0, 69911.0, 696000.0):
            for min_size in (0.1, 0.5, 5.0):
                self.assertGreaterEqual(visual_radius(radius_km, min_size), min_size)

    def test_non_positive_min_size_rejected(self):
        for bad in (0.0, -1.0, float('nan'), float('inf'), None):
            with self.assertRaises(ConfigurationError):
                visual_radius(6371.0, bad)


if __name__ == '__main__':
    unittest.main()
