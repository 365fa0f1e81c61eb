from fastapi import APIRouter
import logging

from errors import GradebookError
from models import ScoreScale
from routes.common import to_http
from schemas import ScaleSettings
from settings import load_scale, save_scale

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/settings", response_model=ScaleSettings)
def get_settings():
    try:
        scale = load_scale()
    except GradebookError as e:
        logger.warning("GET /settings - invalid settings file: %s", e)
        raise to_http(e)
    logger.info("GET /settings - scale [%g, %g], integer_only: %s",
                scale.minimum, scale.maximum, scale.integer_only)
    return ScaleSettings(minimum=scale.minimum, maximum=scale.maximum,
                         integer_only=scale.integer_only)


@router.post("/settings", response_model=ScaleSettings)
def post_settings(body: ScaleSettings):
    logger.info("POST /settings - scale [%g, %g], integer_only: %s",
                body.minimum, body.maximum, body.integer_only)
    try:
        save_scale(ScoreScale(**body.model_dump()))
    except GradebookError as e:
        logger.warning("POST /settings - rejected: %s", e)
        raise to_http(e)
    return body
