# jym/webhooks/router.py
from fastapi import APIRouter

webhook_router = APIRouter()

# Import handlers inside a function to avoid circular imports
def register_handlers():
    from jym.webhooks import telegram_handler, whatsapp_handler, loopmessage_handler
    webhook_router.include_router(telegram_handler.router, prefix="/telegram")
    webhook_router.include_router(whatsapp_handler.router, prefix="/whatsapp")
    webhook_router.include_router(loopmessage_handler.router, prefix="/loopmessage")

register_handlers()

@webhook_router.get("/")
async def webhook_info():
    return {
        "endpoints": {
            "telegram": "/webhooks/telegram",
            "whatsapp": "/webhooks/whatsapp",
            "loopmessage": "/webhooks/loopmessage",
        },
        "note": "Inbound messages are queued and answered by workers"
    }
