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

from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime
from typing import Any, Optional

from dacite import Config, from_dict

from shared.json_utils import convert_keys
from shared.site_config import DEFAULT_ADMIN_USERNAME, default_site_config
from shared.types import PostStatus

_DACITE_CONFIG = Config(
    cast=[PostStatus],
    type_hooks={datetime: datetime.fromisoformat},
)


@dataclass
class Banner:
    """Hero banner shown on the homepage."""

    heading: str = ""
    subtext: str = ""


@dataclass
class SeoSettings:
    """Site-wide SEO metadata."""

    title: str = ""
    description: str = ""
    og_image: Optional[str] = None


@dataclass
class HomepageAd:
    text: str = ""
    image: str = ""


@dataclass
class SiteConfig:
    """The singleton site configuration as seen by API clients."""

    title: str = ""
    favicon: str = ""
    banner: Banner = field(default_factory=Banner)
    seo: SeoSettings = field(default_factory=SeoSettings)
    homepage_ad: HomepageAd = field(default_factory=HomepageAd)
    admin_username: str = DEFAULT_ADMIN_USERNAME

    @classmethod
    def default(cls) -> "SiteConfig":
        return from_dict(cls, default_site_config(), config=_DACITE_CONFIG)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "SiteConfig":
        return from_dict(
            cls, convert_keys(data, "camel_to_snake"), config=_DACITE_CONFIG
        )

    def to_json(self) -> dict[str, Any]:
        return convert_keys(asdict(self), "snake_to_camel")

    def merged(self, **changes: Any) -> "SiteConfig":
        """Returns a copy with the given top-level sections replaced."""
        data = asdict(self)
        for key, value in changes.items():
            data[key] = asdict(value) if is_dataclass(value) else value
        return from_dict(SiteConfig, data, config=_DACITE_CONFIG)


@dataclass
class BlogPost:
    """A blog post as returned by the API."""

    id: str
    title: str
    content: str
    created_at: datetime
    status: PostStatus = PostStatus.PUBLISHED
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "BlogPost":
        return from_dict(
            cls, convert_keys(data, "camel_to_snake"), config=_DACITE_CONFIG
        )
