# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

import unittest

from shared.json_utils import camel_to_snake, convert_keys, snake_to_camel


class JsonUtilsTest(unittest.TestCase):

    def test_camel_to_snake(self):
        self.assertEqual(camel_to_snake("seoTitle"), "seo_title")
        self.assertEqual(camel_to_snake("homepageAd"), "homepage_ad")
        self.assertEqual(camel_to_snake("title"), "title")

    def test_snake_to_camel(self):
        self.assertEqual(snake_to_camel("seo_description"), "seoDescription")
        self.assertEqual(snake_to_camel("og_image"), "ogImage")
        self.assertEqual(snake_to_camel("id"), "id")

    def test_convert_keys_walks_nested_structures(self):
        payload = {
            "homepageAd": {"text": "Ad", "image": "a.png"},
            "posts": [{"seoTitle": "T", "createdAt": "2025-01-01"}],
            "count": 2,
        }
        converted = convert_keys(payload, "camel_to_snake")
        self.assertEqual(
            converted,
            {
                "homepage_ad": {"text": "Ad", "image": "a.png"},
                "posts": [{"seo_title": "T", "created_at": "2025-01-01"}],
                "count": 2,
            },
        )
        self.assertEqual(convert_keys(converted, "snake_to_camel"), payload)

    def test_convert_keys_rejects_unknown_mode(self):
        with self.assertRaises(ValueError):
            convert_keys({"a": 1}, "kebab")


if __name__ == "__main__":
    unittest.main()
