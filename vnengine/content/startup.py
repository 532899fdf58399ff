from __future__ import annotations

import logging
import os

from vnengine.content.registry import load_content_pack
from vnengine.content.singleton import init_content

logger = logging.getLogger(__name__)

DEFAULT_CONTENT = "vnengine.content.demo:build_demo_pack"


def init_content_for_app() -> None:
    target = os.environ.get("VNENGINE_CONTENT", DEFAULT_CONTENT)
    pack = init_content(load_content_pack(target))
    logger.info("Content pack %r ready (%s)", pack.project_id, target)
