import logging
from fastapi import APIRouter, Depends, HTTPException, status

from chatcache.api.deps import enforce_rate_limit, get_chat_handler
from chatcache.core.chat import ChatHandler, InvalidMessageError
from chatcache.llm.client import OllamaConnectionError, OllamaModelUnavailableError
from chatcache.models.schemas import ChatRequest, ChatResponse, ErrorResponse

router = APIRouter(prefix="/api", dependencies=[Depends(enforce_rate_limit)])
logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = "Internal Server Error"


@router.post(
    "/chat",
    tags=["Chat"],
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def post_chat_message(request: ChatRequest, handler: ChatHandler = Depends(get_chat_handler)):
    """
    Runs one conversational turn. The session named by `sessionId` is created
    on first use; without a `sessionId` a new session is started.
    """
    try:
        turn = handler.handle(request.message, request.session_id)
    except InvalidMessageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except OllamaConnectionError as e:
        logger.error(f"Failed to reach the reasoning engine: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR_DETAIL)
    except OllamaModelUnavailableError as e:
        logger.error(f"Reasoning engine model unavailable: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR_DETAIL)
    except Exception as e:
        logger.exception(f"Unexpected error while handling chat turn: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR_DETAIL)

    metadata = turn.metadata
    return ChatResponse(
        response=turn.response,
        session_id=turn.session_id,
        history_length=turn.history_length,
        metrics=metadata.metrics,
        intervention_level=metadata.intervention_level,
        warden_intent=metadata.warden_intent,
    )
