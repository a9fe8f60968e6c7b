import json
import os
import tempfile
import unittest

from pydantic import ValidationError

from matatu_fare.providers.operator_directory import (
    DEFAULT_OPERATORS,
    StaticOperatorDirectory,
    route_key_for,
)


class TestStaticOperatorDirectory(unittest.TestCase):
    def test_route_key_format(self):
        self.assertEqual(route_key_for("CBD", " Westlands "), "CBD to Westlands")

    def test_fetch_operators_matches_case_insensitively_in_directory_order(self):
        directory = StaticOperatorDirectory()
        names = [op.name for op in directory.fetch_operators("cbd to westlands")]
        self.assertEqual(names, ["City Hoppa", "Double M"])

    def test_fetch_operators_matches_substring(self):
        directory = StaticOperatorDirectory()
        names = [op.name for op in directory.fetch_operators("Rongai")]
        self.assertEqual(names, ["Double M", "Kenya Bus"])

    def test_unserved_route_returns_empty(self):
        directory = StaticOperatorDirectory()
        self.assertEqual(directory.fetch_operators("Thika to Juja"), [])

    def test_from_json_loads_and_validates(self):
        data = [op.model_dump() for op in DEFAULT_OPERATORS[:1]]
        data[0]["name"] = "Super Metro"
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "operators.json")
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            directory = StaticOperatorDirectory.from_json(path)

        self.assertEqual([op.name for op in directory.operators], ["Super Metro"])
        self.assertEqual(directory.operators[0].served_routes, ("CBD to Westlands", "CBD to Buruburu"))

    def test_from_json_rejects_out_of_range_rating(self):
        bad = [{
            "id": "x", "name": "X", "rating": 7, "reliability": 5, "safety_score": 5,
            "average_wait_minutes": 5, "served_routes": [], "price_multiplier": 1.0,
        }]
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "operators.json")
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(bad, fh)
            with self.assertRaises(ValidationError):
                StaticOperatorDirectory.from_json(path)


if __name__ == "__main__":
    unittest.main()
