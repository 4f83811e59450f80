import math
import unittest

from beatline.tweens import LinearTween, Tween


class TestTweens(unittest.TestCase):
    def test_endpoints(self):
        for make in (Tween.linear, Tween.sine_in, Tween.sine_out, Tween.sine_in_out):
            t = make(10, 20)
            self.assertAlmostEqual(t(0), 10)
            self.assertAlmostEqual(t(1), 20)

    def test_midpoints(self):
        self.assertAlmostEqual(Tween.linear(0, 10)(0.5), 5)
        self.assertAlmostEqual(Tween.sine_in_out(0, 10)(0.5), 5)
        self.assertAlmostEqual(Tween.sine_in(0, 1)(0.5), 1 - math.cos(math.pi / 4))
        self.assertAlmostEqual(Tween.sine_out(0, 1)(0.5), math.sin(math.pi / 4))

    def test_descending(self):
        t = LinearTween(100, 50)
        self.assertEqual(t.update(0.25), 87.5)
        self.assertEqual(repr(t), "LinearTween(100, 50)")
