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

import copy
from typing import Any

# Top-level sections every site configuration carries.
SITE_CONFIG_SECTIONS = ("title", "favicon", "banner", "seo", "homepage_ad")

DEFAULT_ADMIN_USERNAME = "admin"

DEFAULT_SITE_CONFIG: dict[str, Any] = {
    "title": "UniUnity.space",
    "favicon": "/favicon.ico",
    "banner": {
        "heading": "Future-Proof Your Growth with AI-Driven Tech",
        "subtext": (
            "Empowering businesses with cutting-edge AI solutions and "
            "development services"
        ),
    },
    "seo": {
        "title": "UniUnity.space - AI-Driven Tech Solutions",
        "description": (
            "Leading provider of AI automation, website development, app "
            "development, and user acquisition services."
        ),
        "og_image": (
            "https://images.unsplash.com/photo-1451187580459-43490279c0fa"
            "?auto=format&fit=crop&q=80"
        ),
    },
    "homepage_ad": {
        "text": "Transform your business with AI",
        "image": (
            "https://images.unsplash.com/photo-1636819488524-1f019c4e1c44"
            "?auto=format&fit=crop&q=80"
        ),
    },
    "admin_username": DEFAULT_ADMIN_USERNAME,
}


def default_site_config() -> dict[str, Any]:
    """Returns a fresh copy of the default site configuration (snake_case keys)."""
    return copy.deepcopy(DEFAULT_SITE_CONFIG)


def merge_site_config(base: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    """
    Merges supplied top-level keys onto a configuration.

    Nested sections (banner, seo, homepage_ad) are replaced wholesale when
    supplied; keys that are absent or None keep the value from `base`.
    """
    merged = copy.deepcopy(base)
    for key, value in fields.items():
        if value is None:
            continue
        merged[key] = copy.deepcopy(value)
    return merged
