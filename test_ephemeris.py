import math
import unittest
from datetime import datetime, timedelta, timezone
import numpy as np
from config import config, ConfigurationError, AU_KM, J2000_JD
from ephemeris import (AstropyEphemeris, EphemerisRangeError, KeplerEphemeris, create_ephemeris,
                       datetime_to_jd, equatorial_to_ecliptic, jd_to_datetime, solve_kepler_equation,
                       OBLIQUITY_J2000_DEG)

J2000 = datetime(2000, 1, 1, 12, tzinfo=timezone.utc)


def ecliptic_longitude(vector):
    return math.atan2(vector[1], vector[0])


def angle_between(a, b):
    cos_angle = np.dot(a, b) / (np.linalg.norm(a) * np.linalg.norm(b))
    return math.acos(max(-1.0, min(1.0, cos_angle)))


class TestJulianDate(unittest.TestCase):

    def test_j2000_epoch(self):
        self.assertEqual(datetime_to_jd(J2000), J2000_JD)

    def test_naive_datetime_is_utc(self):
        self.assertEqual(datetime_to_jd(datetime(2000, 1, 1, 12)), J2000_JD)

    def test_known_date(self):
        # 1999-01-01 00:00 UTC
        self.assertAlmostEqual(datetime_to_jd(datetime(1999, 1, 1, tzinfo=timezone.utc)), 2451179.5)

    def test_jd_to_datetime(self):
        self.assertEqual(jd_to_datetime(J2000_JD + 1.5), datetime(2000, 1, 3, tzinfo=timezone.utc))


class TestEclipticRotation(unittest.TestCase):

    def test_x_axis_unchanged(self):
        np.testing.assert_array_almost_equal(equatorial_to_ecliptic(np.array([[1.0, 0.0, 0.0]])), [[1.0, 0.0, 0.0]])

    def test_ecliptic_pole_maps_to_z(self):
        eps = math.radians(OBLIQUITY_J2000_DEG)
        pole = np.array([[0.0, -math.sin(eps), math.cos(eps)]])
        np.testing.assert_array_almost_equal(equatorial_to_ecliptic(pole), [[0.0, 0.0, 1.0]])


class TestKeplerSolver(unittest.TestCase):

    def test_circular_orbit(self):
        M = np.linspace(0, 2 * np.pi, 7)
        np.testing.assert_array_almost_equal(solve_kepler_equation(M, 0.0), M)

    def test_solution_satisfies_equation(self):
        for e in (0.0167, 0.2056, 0.6, 0.95):
            M = np.linspace(0, 2 * np.pi, 50)
            E = solve_kepler_equation(M, e)
            np.testing.assert_array_almost_equal(E - e * np.sin(E), M, decimal=9)

    def test_invalid_eccentricity(self):
        for e in (-0.1, 1.0, 1.5):
            with self.assertRaises(ConfigurationError):
                solve_kepler_equation(0.5, e)


class TestKeplerEphemeris(unittest.TestCase):

    def setUp(self):
        self.ephemeris = KeplerEphemeris()
        self.data = config.SolarSystem.BODY_DATA

    def test_earth_distance_within_perihelion_aphelion(self):
        a, e = self.data['Earth']['semi_major_axis_au'], self.data['Earth']['eccentricity']
        jd = J2000_JD + np.linspace(0, 365.256, 100)
        r = np.linalg.norm(self.ephemeris.heliocentric_positions('earth', jd), axis=1)
        self.assertTrue(np.all(r >= a * (1 - e) - 1e-9))
        self.assertTrue(np.all(r <= a * (1 + e) + 1e-9))

    def test_earth_longitude_at_j2000(self):
        # Earth's heliocentric longitude on 2000-01-01 is about 100 degrees
        position = self.ephemeris.heliocentric_position('earth', J2000)
        self.assertAlmostEqual(math.degrees(ecliptic_longitude(position)) % 360, 100.4, delta=1.0)

    def test_periodicity(self):
        period = self.data['Mars']['orbital_period_days']
        jd = np.array([J2000_JD + 10.0, J2000_JD + 10.0 + period])
        positions = self.ephemeris.heliocentric_positions('mars', jd)
        np.testing.assert_array_almost_equal(positions[0], positions[1], decimal=8)

    def test_singular_matches_vectorised(self):
        instant = datetime(2024, 3, 20, tzinfo=timezone.utc)
        single = self.ephemeris.heliocentric_position('jupiter', instant)
        many = self.ephemeris.heliocentric_positions('jupiter', [datetime_to_jd(instant)])
        np.testing.assert_array_almost_equal(single, many[0])

    def test_moon_relative_distance_km(self):
        a_km = self.data['Moon']['semi_major_axis_au'] * AU_KM
        e = self.data['Moon']['eccentricity']
        jd = J2000_JD + np.linspace(0, 27.3, 40)
        r = np.linalg.norm(self.ephemeris.relative_positions('moon', jd), axis=1)
        self.assertTrue(np.all(r >= a_km * (1 - e) - 1.0))
        self.assertTrue(np.all(r <= a_km * (1 + e) + 1.0))

    def test_query_kind_must_match_parent(self):
        with self.assertRaises(ConfigurationError):
            self.ephemeris.heliocentric_position('moon', J2000)
        with self.assertRaises(ConfigurationError):
            self.ephemeris.relative_position('earth', J2000)

    def test_unknown_body(self):
        with self.assertRaises(ConfigurationError):
            self.ephemeris.heliocentric_position('pluto', J2000)
        with self.assertRaises(ConfigurationError):
            self.ephemeris.check_supported('pluto')

    def test_check_supported(self):
        self.ephemeris.check_supported('earth')
        self.ephemeris.check_supported('moon', 'earth')
        with self.assertRaises(ConfigurationError):
            self.ephemeris.check_supported('moon')

    def test_out_of_range(self):
        with self.assertRaises(EphemerisRangeError):
            self.ephemeris.heliocentric_position('earth', datetime(500, 1, 1, tzinfo=timezone.utc))
        with self.assertRaises(EphemerisRangeError):
            self.ephemeris.heliocentric_positions('earth', [J2000_JD, J2000_JD + 400000.0])

    def test_range_error_is_value_error(self):
        self.assertTrue(issubclass(EphemerisRangeError, ValueError))

    def test_missing_elements_rejected(self):
        data = {'Rock': {'ephemeris_id': 'rock', 'radius_km': 1.0, 'color': (1, 2, 3), 'parent': None,
                         'orbital_period_days': 100.0, 'rotation_period_hours': 1.0}}
        with self.assertRaises(ConfigurationError):
            KeplerEphemeris(data)

    def test_factory(self):
        self.assertIsInstance(create_ephemeris("kepler"), KeplerEphemeris)
        self.assertIsInstance(create_ephemeris("astropy"), AstropyEphemeris)
        with self.assertRaises(ConfigurationError):
            create_ephemeris("horizons")


class TestAstropyEphemeris(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.ephemeris = AstropyEphemeris()

    def test_earth_near_one_au(self):
        r = np.linalg.norm(self.ephemeris.heliocentric_position('earth', J2000))
        self.assertAlmostEqual(r, 0.9833, delta=0.002)  # Perihelion is in early January

    def test_earth_in_ecliptic_plane(self):
        position = self.ephemeris.heliocentric_position('earth', datetime(2021, 5, 1, tzinfo=timezone.utc))
        self.assertLess(abs(position[2]), 1e-3)

    def test_earth_period_is_one_year(self):
        start = J2000_JD + 100.0
        positions = self.ephemeris.heliocentric_positions('earth', [start, start + 365.256])
        self.assertLess(math.degrees(angle_between(positions[0], positions[1])), 0.1)

    def test_mercury_faster_than_earth(self):
        jd = [J2000_JD, J2000_JD + 10.0]
        mercury = self.ephemeris.heliocentric_positions('mercury', jd)
        earth = self.ephemeris.heliocentric_positions('earth', jd)
        self.assertGreater(angle_between(*mercury), angle_between(*earth))

    def test_keplers_second_law(self):
        # Mercury sweeps a larger angle per day near perihelion than near aphelion
        jd = J2000_JD + np.linspace(0, 87.969, 177)
        positions = self.ephemeris.heliocentric_positions('mercury', jd)
        r = np.linalg.norm(positions, axis=1)
        i_peri, i_apo = int(np.argmin(r[:-1])), int(np.argmax(r[:-1]))
        rate_peri = angle_between(positions[i_peri], positions[i_peri + 1])
        rate_apo = angle_between(positions[i_apo], positions[i_apo + 1])
        self.assertGreater(rate_peri, rate_apo)

    def test_moon_distance(self):
        jd = J2000_JD + np.linspace(0, 30, 31)
        r = np.linalg.norm(self.ephemeris.relative_positions('moon', jd), axis=1)
        self.assertTrue(np.all(r > 356000.0))
        self.assertTrue(np.all(r < 407000.0))

    def test_relative_query_only_around_earth(self):
        self.ephemeris.check_supported('moon', 'earth')
        with self.assertRaises(ConfigurationError):
            self.ephemeris.check_supported('moon', 'mars')
        with self.assertRaises(ConfigurationError):
            self.ephemeris.relative_position('mars', J2000)

    def test_out_of_range(self):
        with self.assertRaises(EphemerisRangeError):
            self.ephemeris.heliocentric_position('earth', datetime(3500, 1, 1, tzinfo=timezone.utc))

    def test_continuity(self):
        instant = datetime(2010, 7, 1, tzinfo=timezone.utc)
        a = self.ephemeris.heliocentric_position('mars', instant)
        b = self.ephemeris.heliocentric_position('mars', instant + timedelta(minutes=1))
        self.assertLess(np.linalg.norm(a - b), 1e-4)


if __name__ == '__main__':
    unittest.main()
