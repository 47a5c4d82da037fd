import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .db import init_db
from .settings import settings, llm_configured
from .routers import listen

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
	# Initialize DB schema
	init_db()
	yield


app = FastAPI(title="Listening Practice API", lifespan=lifespan)
app.include_router(listen.router)


@app.get("/info")
def root():
	return {
		"status": "ok",
		"llm_configured": llm_configured(),
		"gemini_configured": bool(settings.gemini_api_key),
		"words_per_second": settings.words_per_second,
	}
