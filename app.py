"""
What2Watch - FastAPI Application
JSON API over the recommendation engine: quiz -> ranked movie/TV recommendations.
"""

from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from fastapi import Depends, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from config import Config
from what2watch.buzz import enhanced_category
from what2watch.logger import configure_logging, logger
from what2watch.models import MEDIA_MOVIE, MEDIA_TV
from what2watch.recommender import RecommendationError, RecommendationService, build_service

configure_logging(Config.LOG_LEVEL)

# Initialize FastAPI app
app = FastAPI(
    title="What2Watch",
    description="Quiz-driven movie and TV recommendations with Reddit buzz",
    version="1.0.0"
)


class GenrePriorityBody(BaseModel):
    genre: str
    priority: int = Field(..., ge=1)


class AnswerBody(BaseModel):
    question: str
    answer: Union[str, List[str]] = ""
    genrePriorities: Optional[List[GenrePriorityBody]] = None


class PreferencesRequest(BaseModel):
    answers: List[AnswerBody]


class RecommendationRequest(BaseModel):
    answers: List[AnswerBody]
    strategy: Optional[str] = None
    session_id: Optional[str] = None


class FeedbackRequest(BaseModel):
    content_id: int
    title: str
    liked: bool
    rank: int = Field(0, ge=0)
    session_id: Optional[str] = None
    variant: Optional[str] = None
    genres: List[str] = []


def _answers(answers: List[AnswerBody]) -> List[Dict[str, Any]]:
    result = []
    for answer in answers:
        data = {"question": answer.question, "answer": answer.answer}
        if answer.genrePriorities:
            data["genrePriorities"] = [{"genre": p.genre, "priority": p.priority} for p in answer.genrePriorities]
        result.append(data)
    return result


@lru_cache()
def get_service() -> RecommendationService:
    """Service shared across requests (overridden in tests)."""
    for problem in Config.validate():
        logger.warning(f"Configuration: {problem}")
    return build_service()


@app.post("/api/preferences")
def preferences(body: PreferencesRequest, service: RecommendationService = Depends(get_service)):
    """Preference profile for a set of quiz answers."""
    return service.extract_preferences(_answers(body.answers)).to_dict()


@app.post("/api/recommendations")
def recommendations(body: RecommendationRequest, service: RecommendationService = Depends(get_service)):
    """
    Main recommendation endpoint.
    Orchestrates: Answers -> Profile -> Candidates -> Buzz/Critics -> Ranking
    """
    if body.strategy is not None and body.strategy.strip().upper() not in ("A", "B"):
        raise HTTPException(status_code=400, detail=f"Unknown strategy: {body.strategy}")

    # Assign up front so a failed request still reports the session it created
    assignment = service.selector.assign(body.session_id, body.strategy)
    try:
        response = service.recommend(_answers(body.answers), assignment.variant, assignment.session_id)
    except Exception:
        # Upstream outages degrade to an empty list rather than a 500
        logger.exception("Recommendation request failed")
        return {
            "session_id": assignment.session_id,
            "variant": assignment.variant,
            "profile": service.extract_preferences(_answers(body.answers)).to_dict(),
            "recommendations": [],
        }

    return response.to_dict()


@app.get("/api/buzz")
def buzz(
    title: str = Query(..., min_length=1),
    year: Optional[int] = None,
    media_type: Optional[str] = None,
    service: RecommendationService = Depends(get_service)
):
    """Reddit buzz for a single title."""
    if media_type is not None and media_type not in (MEDIA_MOVIE, MEDIA_TV):
        raise HTTPException(status_code=400, detail="media_type must be 'movie' or 'tv'")

    result = service.classify_buzz(title, year, media_type)
    data = result.to_dict()
    data["category"] = enhanced_category(result)
    return data


@app.post("/api/feedback")
def feedback(body: FeedbackRequest, service: RecommendationService = Depends(get_service)):
    try:
        event = service.record_feedback(
            content_id=body.content_id,
            title=body.title,
            liked=body.liked,
            rank=body.rank,
            session_id=body.session_id,
            variant=body.variant,
            genres=body.genres,
        )
    except RecommendationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return event.to_dict()


@app.get("/api/analytics")
def analytics(service: RecommendationService = Depends(get_service)):
    return service.feedback_stats()


@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    """
    return {
        "status": "healthy",
        "tmdb_configured": bool(Config.TMDB_API_KEY),
        "omdb_configured": bool(Config.OMDB_API_KEY),
    }


if __name__ == "__main__":
    import uvicorn

    logger.info("Starting What2Watch on http://localhost:8000")
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
