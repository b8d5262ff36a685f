"""Chat assistant endpoint."""
from fastapi import APIRouter, Depends

from coincoach.api.deps import limit_chat
from coincoach.models.chat import ChatRequest, ChatResponse
from coincoach.services.chat import ChatAssistant, get_chat_assistant

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse, dependencies=[Depends(limit_chat)])
async def chat(request: ChatRequest, assistant: ChatAssistant = Depends(get_chat_assistant)):
    """
    Ask the CoinCoach assistant a question.

    Attach ``sessionData`` from the simulator to get advice on the current
    position. Limited to 20 requests per minute per client.
    """
    return ChatResponse(response=await assistant.reply(request))
