import unittest
from config import config, ConfigurationError, SimulationConfig, validate_body_catalog, AU_KM, AU_SCALE, KM_SCALE

class TestSimulationConfig(unittest.TestCase):

    def test_defaults_validate(self):
        config.validate()

    def test_scale_constants(self):
        self.assertEqual(AU_SCALE, 100.0)
        self.assertEqual(AU_KM, 149597870.7)
        self.assertAlmostEqual(KM_SCALE * AU_KM, AU_SCALE)

    def test_documented_defaults(self):
        self.assertEqual(config.Orbit.SAMPLES, 360)
        self.assertEqual(config.Display.DEFAULT_MIN_SIZE, 0.5)
        self.assertEqual(config.Display.MIN_SIZE_LIMITS, (0.1, 5.0))
        self.assertEqual(config.Time.DEFAULT_TIME_SCALE_DAYS_PER_SEC, 1.0)

    def test_invalid_provider_rejected(self):
        original = SimulationConfig.Ephemeris.PROVIDER
        try:
            SimulationConfig.Ephemeris.PROVIDER = "oracle"
            with self.assertRaises(ConfigurationError):
                config.validate()
        finally:
            SimulationConfig.Ephemeris.PROVIDER = original

    def test_min_size_outside_limits_rejected(self):
        original = SimulationConfig.Display.DEFAULT_MIN_SIZE
        try:
            SimulationConfig.Display.DEFAULT_MIN_SIZE = 0.0
            with self.assertRaises(ConfigurationError):
                config.validate()
        finally:
            SimulationConfig.Display.DEFAULT_MIN_SIZE = original

    def test_too_few_samples_rejected(self):
        original = SimulationConfig.Orbit.SAMPLES
        try:
            SimulationConfig.Orbit.SAMPLES = 2
            with self.assertRaises(ConfigurationError):
                config.validate()
        finally:
            SimulationConfig.Orbit.SAMPLES = original


class TestBodyCatalogValidation(unittest.TestCase):

    def entry(self, **overrides):
        data = {'ephemeris_id': 'rock', 'radius_km': 10.0, 'color': (1, 2, 3), 'parent': None,
                'orbital_period_days': 50.0, 'rotation_period_hours': 5.0}
        data.update(overrides)
        return data

    def test_valid_catalog(self):
        validate_body_catalog({'Rock': self.entry(), 'Pebble': self.entry(ephemeris_id='pebble', parent='Rock')})

    def test_empty_catalog(self):
        with self.assertRaises(ConfigurationError):
            validate_body_catalog({})

    def test_missing_field(self):
        data = self.entry()
        del data['orbital_period_days']
        with self.assertRaises(ConfigurationError):
            validate_body_catalog({'Rock': data})

    def test_bad_color(self):
        with self.assertRaises(ConfigurationError):
            validate_body_catalog({'Rock': self.entry(color=(0, 0, 300))})

    def test_self_parent(self):
        with self.assertRaises(ConfigurationError):
            validate_body_catalog({'Rock': self.entry(parent='Rock')})

    def test_parent_order_message(self):
        with self.assertRaisesRegex(ConfigurationError, "listed before"):
            validate_body_catalog({'Pebble': self.entry(parent='Rock'), 'Rock': self.entry()})


if __name__ == '__main__':
    unittest.main()
