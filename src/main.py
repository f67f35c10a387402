import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
from src.db.database import engine, SessionLocal
from src.models import db_models
from src.repositories.video_repository import VideoRepository
from src.routers import videos_router
from worker.video_processor_task import PipelineCoordinator


# import models to create tables
db_models.Base.metadata.create_all(bind=engine)


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    coordinator = PipelineCoordinator(VideoRepository(SessionLocal))
    coordinator.start()
    fastapi_app.state.coordinator = coordinator
    yield
    await asyncio.to_thread(coordinator.shutdown)


app = FastAPI(lifespan=lifespan)

@app.get("/")
async def root():
    return {"message": "Video processing service"}

app.include_router(router = videos_router.router)  # No prefix here, as it's already defined in the router itself
