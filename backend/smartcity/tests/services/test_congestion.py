import unittest

from smartcity.models.traffic import AreaCenter
from smartcity.services.congestion import (
    make_sample,
    round_half_up,
    sample_from_payload,
    sample_weight,
    summarize_areas,
    summarize_samples,
)


class TestFlowSample(unittest.TestCase):

    def test_congestion_is_clamped(self):
        self.assertEqual(make_sample(0, 0, 120, 60, 1).congestion, 0.0)
        self.assertEqual(make_sample(0, 0, -10, 60, 1).congestion, 1.0)
        self.assertAlmostEqual(make_sample(0, 0, 30, 60, 1).congestion, 0.5)

    def test_zero_free_flow_is_fully_congested(self):
        self.assertEqual(make_sample(0, 0, 30, 0, 1).congestion, 1.0)

    def test_payload_envelope_and_bare(self):
        enveloped = sample_from_payload(1.0, 2.0, {"flowSegmentData": {"currentSpeed": 40, "freeFlowSpeed": 80, "confidence": 0.9}})
        bare = sample_from_payload(1.0, 2.0, {"currentSpeed": "40", "freeFlowSpeed": "80", "confidence": "0.9"})
        self.assertEqual(enveloped, bare)
        self.assertAlmostEqual(enveloped.congestion, 0.5)

    def test_payload_missing_fields_read_as_zero(self):
        sample = sample_from_payload(1.0, 2.0, {"flowSegmentData": {"currentSpeed": None}})
        self.assertEqual(sample.current_speed, 0.0)
        self.assertEqual(sample.free_flow_speed, 0.0)
        self.assertEqual(sample.confidence, 0.0)

    def test_weight(self):
        self.assertEqual(sample_weight(100, 1), 100)
        self.assertAlmostEqual(sample_weight(20, 0.0), 2.0)
        self.assertEqual(sample_weight(0.5, 1), 1.0)
        self.assertEqual(sample_weight(50, float("inf")), 50)
        self.assertEqual(sample_weight(50, float("nan")), 50)


class TestSummarizeSamples(unittest.TestCase):

    def test_equal_ratios_give_same_weighted_ratio(self):
        a = make_sample(0, 0, 50, 100, 1)
        b = make_sample(0, 0, 10, 20, 0.1)
        metrics = summarize_samples([a, b])
        self.assertAlmostEqual(metrics.congestion_pct, 0.5)
        self.assertEqual(metrics.weight_sum, 102)

    def test_weighting_changes_outcome(self):
        samples = [
            make_sample(0, 0, 50, 100, 1),
            make_sample(0, 0, 10, 20, 0.1),
            make_sample(0, 0, 90, 90, 1),
        ]
        metrics = summarize_samples(samples)
        weighted = 141 / 192
        unweighted = (0.5 + 0.5 + 1.0) / 3
        self.assertAlmostEqual(metrics.congestion_pct, 1 - weighted)
        self.assertNotAlmostEqual(metrics.congestion_pct, 1 - unweighted, places=3)
        self.assertEqual(metrics.weight_sum, 192)
        self.assertEqual(metrics.segments, 3)
        self.assertEqual(metrics.avg_current_speed, 50)
        self.assertEqual(metrics.avg_free_flow_speed, 70)

    def test_all_failed_degenerate_case(self):
        metrics = summarize_samples([])
        self.assertEqual(metrics.segments, 0)
        self.assertEqual(metrics.congestion_pct, 0.0)
        self.assertEqual(metrics.avg_current_speed, 0)
        self.assertEqual(metrics.speed_drop_pct, 0.0)
        self.assertEqual(metrics.top_hotspots, [])
        self.assertTrue(metrics.insufficient_data)

    def test_no_free_flow_falls_back_to_unweighted(self):
        metrics = summarize_samples([make_sample(0, 0, 30, 0, 1)])
        # avgFs is 0 so the ratio defaults to 1
        self.assertEqual(metrics.congestion_pct, 0.0)
        self.assertEqual(metrics.weight_sum, 0)
        self.assertFalse(metrics.insufficient_data)
        self.assertEqual(metrics.top_hotspots, [])

    def test_adversarial_speeds_stay_in_bounds(self):
        samples = [
            make_sample(0, 0, 500, 10, 1),
            make_sample(0, 1, -20, 50, 2),
            make_sample(0, 2, 0, -5, -1),
            make_sample(0, 3, 1e9, 1e-9, 0),
        ]
        metrics = summarize_samples(samples)
        self.assertGreaterEqual(metrics.congestion_pct, 0.0)
        self.assertLessEqual(metrics.congestion_pct, 1.0)
        for s in samples:
            self.assertGreaterEqual(s.congestion, 0.0)
            self.assertLessEqual(s.congestion, 1.0)

    def test_huge_finite_speeds_do_not_overflow(self):
        samples = [make_sample(0, 0, 1e308, 1e308, 1), make_sample(0, 1, 1e308, 1e308, 1)]
        metrics = summarize_samples(samples)
        self.assertEqual(metrics.segments, 2)
        self.assertGreaterEqual(metrics.congestion_pct, 0.0)
        self.assertLessEqual(metrics.congestion_pct, 1.0)
        self.assertAlmostEqual(metrics.congestion_pct, 0.0)
        self.assertGreater(metrics.avg_current_speed, 0)

    def test_round_half_up_non_finite_is_zero(self):
        self.assertEqual(round_half_up(float("inf")), 0)
        self.assertEqual(round_half_up(float("-inf")), 0)
        self.assertEqual(round_half_up(float("nan")), 0)
        self.assertEqual(round_half_up(2.5), 3)

    def test_hotspots_sorted_limited_and_filtered(self):
        samples = [make_sample(i, i, speed, 100, 1) for i, speed in enumerate(range(5, 100, 8))]
        samples.append(make_sample(99, 99, 0, 0, 1))
        metrics = summarize_samples(samples)
        hotspots = metrics.top_hotspots
        self.assertEqual(len(hotspots), 8)
        for earlier, later in zip(hotspots, hotspots[1:]):
            self.assertGreater(earlier.congestion, later.congestion)
        self.assertTrue(all(h.free_flow_speed > 0 for h in hotspots))
        self.assertAlmostEqual(hotspots[0].congestion, 0.95)

    def test_metrics_serialize_with_camel_case(self):
        payload = summarize_samples([make_sample(0, 0, 50, 100, 1)]).model_dump(by_alias=True)
        for key in ("segments", "avgCurrentSpeed", "avgFreeFlowSpeed", "speedDropPct",
                    "weightSum", "congestionPct", "topHotspots"):
            self.assertIn(key, payload)
        self.assertIn("freeFlowSpeed", payload["topHotspots"][0])


class TestSummarizeAreas(unittest.TestCase):

    def test_mean_over_valid_samples_and_sorted(self):
        centers = [AreaCenter("A", 1, 1), AreaCenter("B", 2, 2), AreaCenter("C", 3, 3)]
        tagged = [
            (0, make_sample(1, 1, 50, 100, 1)),   # 0.5
            (0, make_sample(1, 1, 100, 100, 1)),  # 0.0
            (0, make_sample(1, 1, 10, 0, 1)),     # ignored, no baseline
            (1, make_sample(2, 2, 20, 100, 1)),   # 0.8
        ]
        areas = summarize_areas(centers, tagged)
        self.assertEqual([a.name for a in areas], ["B", "A", "C"])
        self.assertAlmostEqual(areas[0].congestion, 0.8)
        self.assertAlmostEqual(areas[1].congestion, 0.25)
        self.assertEqual(areas[2].congestion, 0.0)


if __name__ == '__main__':
    unittest.main()
