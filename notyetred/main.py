import asyncio
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from notyetred.application.commands import (
    AddLightCommand, DeleteLightsCommand, ReplaceLightCommand, SetOffsetCommand,
    SetPhaseDurationCommand, SetTimeCorrectionCommand, UpdateIntersectionCommand
)
from notyetred.application.kernel import IntersectionKernel
from notyetred.domain import config
from notyetred.domain.exceptions import ConfigurationError, LightNotFoundError
from notyetred.domain.logging import setup_logger
from notyetred.domain.models import (
    IntersectionSettings, IntersectionSnapshot, LightSettings, OffsetUpdate,
    PhaseDurationUpdate, TimeCorrection
)
from notyetred.domain.state import State

logger = setup_logger(__name__)

# Initialize Kernel
kernel = IntersectionKernel()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: arm the wake scheduler and sync time in the background
    kernel.start()
    logger.info("Intersection service started")
    sync_task = asyncio.create_task(kernel.sync_time()) if config.TIME_SYNC_ON_STARTUP else None
    yield
    # Shutdown
    if sync_task is not None:
        sync_task.cancel()
    kernel.stop()
    logger.info("Intersection service stopped")

app = FastAPI(lifespan=lifespan)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def run_command(command):
    try:
        return kernel.dispatch(command)
    except LightNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ConfigurationError, ValidationError) as e:
        raise HTTPException(status_code=422, detail=str(e))

@app.get("/api/intersection", response_model=IntersectionSettings)
async def get_intersection():
    """Returns the cycle length and failure settings"""
    return kernel.settings

@app.put("/api/intersection", response_model=IntersectionSettings)
async def update_intersection(settings: IntersectionSettings):
    """Updates the intersection settings, rescaling every light to the new cycle length"""
    return run_command(UpdateIntersectionCommand(settings))

@app.get("/api/lights", response_model=List[LightSettings])
async def get_lights():
    """Returns the settings of all lights"""
    return kernel.lights

@app.post("/api/lights", response_model=LightSettings)
async def add_light():
    """Adds a light with default phases"""
    index = run_command(AddLightCommand())
    return kernel.light(index)

@app.put("/api/lights/{index}", response_model=LightSettings)
async def replace_light(index: int, settings: LightSettings):
    """Replaces the settings of a light"""
    return run_command(ReplaceLightCommand(index, settings))

@app.delete("/api/lights/{index}")
async def delete_light(index: int):
    """Deletes a light"""
    remaining = run_command(DeleteLightsCommand([index]))
    return {"status": "Light Deleted", "lights": remaining}

@app.put("/api/lights/{index}/phases/{state}", response_model=LightSettings)
async def set_phase_duration(index: int, state: State, update: PhaseDurationUpdate):
    """Sets the duration of one phase, keeping the cycle length"""
    return run_command(SetPhaseDurationCommand(index, state, update.duration))

@app.put("/api/lights/{index}/offset", response_model=LightSettings)
async def set_offset(index: int, update: OffsetUpdate):
    """Sets the offset of a light, rounded to whole seconds"""
    return run_command(SetOffsetCommand(index, update.offset))

@app.get("/api/state", response_model=IntersectionSnapshot)
async def get_state():
    """Returns the phase of every light at the corrected current time"""
    return kernel.snapshot()

@app.get("/api/time", response_model=TimeCorrection)
async def get_time_correction():
    return TimeCorrection(correction=kernel.clock.correction)

@app.put("/api/time", response_model=TimeCorrection)
async def set_time_correction(update: TimeCorrection):
    """Sets the time correction manually"""
    return TimeCorrection(correction=run_command(SetTimeCorrectionCommand(update.correction)))

@app.post("/api/time/sync", response_model=TimeCorrection)
async def sync_time():
    """Re-runs the time sync; falls back to 0 when the time server is unreachable"""
    return TimeCorrection(correction=await kernel.sync_time())

@app.get("/")
def read_root():
    return {"status": "Not Yet Red Backend Running"}
