import logging
import random
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlmodel import Session

from studyhub.ai_service import AIService, SummaryError, TutorError
from studyhub.config import ALLOWED_CONTENT_TYPES, DEFAULT_QUESTION_COUNT, configure_logging, settings
from studyhub.db import create_db_and_tables, get_session
from studyhub.file_processor import FileProcessingError, generate_title, infer_subject, process_file
from studyhub.models import (
    Achievement,
    AuthResponse,
    ChatRequest,
    ChatResponse,
    LoginRequest,
    Question,
    QuizSession,
    QuizSessionCreate,
    SignupRequest,
    StudyMaterial,
    StudyMaterialCreate,
    SummarizeRequest,
    SummaryResponse,
    UserRead,
    UserUpdate,
)
from studyhub.pipeline import generate_for_material, log_outcome
from studyhub.stats import dashboard_stats, progress_data
from studyhub.storage import MemStorage
from studyhub.users import (
    UserExistsError,
    authenticate,
    create_user,
    get_user_by_email,
    get_user_by_id,
    to_public,
    update_user,
)

logger = logging.getLogger(__name__)

# Placeholder; real token issuing is out of scope.
FAKE_TOKEN = "fake-jwt-token"
AI_NOT_CONFIGURED = "AI functionality not configured. Please set your OpenAI API key."

app = FastAPI(title="StudyHub")
app.state.storage = MemStorage()
app.state.ai_service = AIService.from_settings(settings)


@app.on_event("startup")
def startup_event():
    configure_logging()
    create_db_and_tables()
    if app.state.ai_service is None:
        logger.info("OpenAI API key not configured, AI features are disabled")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# --- Dependencies ---

def get_storage(request: Request) -> MemStorage:
    return request.app.state.storage


def get_ai_service(request: Request) -> Optional[AIService]:
    return request.app.state.ai_service


def get_current_user_id() -> int:
    # every request acts as the configured demo user until real auth exists
    return settings.demo_user_id


# --- Users ---

@app.get("/api/user", response_model=UserRead)
def read_current_user(
    session: Session = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
):
    user = get_user_by_id(session, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return to_public(user)


@app.patch("/api/user", response_model=UserRead)
def patch_current_user(
    updates: UserUpdate,
    session: Session = Depends(get_session),
    user_id: int = Depends(get_current_user_id),
):
    user = update_user(session, user_id, updates)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return to_public(user)


@app.post("/api/auth/signup", response_model=AuthResponse)
def signup(data: SignupRequest, session: Session = Depends(get_session)):
    if not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    logger.info("Signup attempt: %s", data.email)
    if get_user_by_email(session, data.email):
        raise HTTPException(status_code=400, detail="User already exists")
    try:
        user = create_user(session, data.email, data.password, data.full_name)
    except UserExistsError:
        raise HTTPException(status_code=400, detail="User already exists")
    return AuthResponse(user=to_public(user), token=FAKE_TOKEN)


@app.post("/api/auth/login", response_model=AuthResponse)
def login(data: LoginRequest, session: Session = Depends(get_session)):
    if not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    user = authenticate(session, data.email, data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return AuthResponse(user=to_public(user), token=FAKE_TOKEN)


# --- Study materials ---

@app.get("/api/study-materials", response_model=List[StudyMaterial])
async def list_study_materials(
    storage: MemStorage = Depends(get_storage),
    user_id: int = Depends(get_current_user_id),
):
    return storage.get_study_materials(user_id)


@app.post("/api/study-materials/upload", response_model=StudyMaterial)
def upload_study_material(
    file: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    storage: MemStorage = Depends(get_storage),
    ai_service: Optional[AIService] = Depends(get_ai_service),
    user_id: int = Depends(get_current_user_id),
):
    final_title = title
    final_subject = subject
    final_content = content or ""
    file_type = "text"

    if file is not None:
        if file.size is not None and file.size > settings.max_upload_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds the {settings.max_upload_mb}MB limit",
            )
        if file.content_type not in ALLOWED_CONTENT_TYPES:
            raise HTTPException(status_code=400, detail=f"Unsupported file type: {file.content_type}")

        logger.info("Processing uploaded file: %s", file.filename)
        data = file.file.read()
        file.file.close()
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File size exceeds the {settings.max_upload_mb}MB limit",
            )

        try:
            processed = process_file(data, file.content_type, file.filename or "")
        except FileProcessingError as e:
            logger.error("File processing error: %s", e)
            raise HTTPException(status_code=400, detail=f"File processing failed: {e}")

        if not final_content and processed.content:
            final_content = processed.content
        if not final_title:
            final_title = generate_title(processed.file_name)
        if not final_subject:
            final_subject = infer_subject(processed.file_name, processed.content)
        file_type = processed.file_type
        logger.info("File processed: %d characters extracted", len(processed.content))

    if not final_title or not final_subject or not final_content:
        raise HTTPException(
            status_code=400,
            detail="Title, subject, and content are required. Either upload a file or provide manual content.",
        )

    try:
        draft = StudyMaterialCreate(
            title=final_title,
            subject=final_subject,
            content=final_content,
            file_type=file_type,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid material data: {e}")

    return _store_material(draft, storage, ai_service, user_id)


@app.post("/api/study-materials", response_model=StudyMaterial)
def create_study_material(
    data: StudyMaterialCreate,
    storage: MemStorage = Depends(get_storage),
    ai_service: Optional[AIService] = Depends(get_ai_service),
    user_id: int = Depends(get_current_user_id),
):
    return _store_material(data, storage, ai_service, user_id)


def _store_material(
    draft: StudyMaterialCreate,
    storage: MemStorage,
    ai_service: Optional[AIService],
    user_id: int,
) -> StudyMaterial:
    logger.info("Creating study material: %s", draft.title)
    material = storage.create_study_material(draft, user_id=user_id)
    outcome = generate_for_material(storage, ai_service, material)
    log_outcome(material, outcome)
    return material


@app.get("/api/materials/{material_id}/questions", response_model=List[Question])
async def list_material_questions(material_id: int, storage: MemStorage = Depends(get_storage)):
    return storage.get_questions_by_material(material_id)


@app.get("/api/questions", response_model=List[Question])
async def list_questions(
    difficulty: Optional[str] = None,
    subject: Optional[str] = None,
    count: int = Query(DEFAULT_QUESTION_COUNT, ge=0),
    storage: MemStorage = Depends(get_storage),
    user_id: int = Depends(get_current_user_id),
):
    questions: List[Question] = []
    for material in storage.get_study_materials(user_id):
        questions.extend(storage.get_questions_by_material(material.id))

    if difficulty and difficulty != "all":
        questions = [q for q in questions if q.difficulty == difficulty]
    if subject and subject != "all":
        questions = [q for q in questions if q.subject == subject]

    random.shuffle(questions)
    return questions[:count]


# --- Quiz sessions, achievements, stats ---

@app.get("/api/quiz-sessions", response_model=List[QuizSession])
async def list_quiz_sessions(
    storage: MemStorage = Depends(get_storage),
    user_id: int = Depends(get_current_user_id),
):
    return storage.get_quiz_sessions(user_id)


@app.post("/api/quiz-sessions", response_model=QuizSession)
async def create_quiz_session(
    data: QuizSessionCreate,
    storage: MemStorage = Depends(get_storage),
    user_id: int = Depends(get_current_user_id),
):
    if data.material_id is not None and storage.get_study_material(data.material_id) is None:
        raise HTTPException(status_code=400, detail="Study material not found")
    return storage.create_quiz_session(data, user_id=user_id)


@app.get("/api/achievements", response_model=List[Achievement])
async def list_achievements(
    storage: MemStorage = Depends(get_storage),
    user_id: int = Depends(get_current_user_id),
):
    return storage.get_user_achievements(user_id)


@app.get("/api/dashboard-stats", response_model=Dict)
async def get_dashboard_stats(
    storage: MemStorage = Depends(get_storage),
    user_id: int = Depends(get_current_user_id),
):
    return dashboard_stats(
        storage.get_study_materials(user_id),
        storage.get_quiz_sessions(user_id),
        storage.get_user_achievements(user_id),
    )


@app.get("/api/progress", response_model=Dict)
async def get_progress(
    storage: MemStorage = Depends(get_storage),
    user_id: int = Depends(get_current_user_id),
):
    return progress_data(storage.get_study_materials(user_id), storage.get_quiz_sessions(user_id))


# --- AI tutor ---

@app.post("/api/ai/chat", response_model=ChatResponse)
def ai_chat(
    data: ChatRequest,
    storage: MemStorage = Depends(get_storage),
    ai_service: Optional[AIService] = Depends(get_ai_service),
):
    if not data.message:
        raise HTTPException(status_code=400, detail="Message is required")
    if ai_service is None:
        raise HTTPException(status_code=400, detail=AI_NOT_CONFIGURED)

    material_content = None
    if data.material_id:
        material = storage.get_study_material(data.material_id)
        if material:
            material_content = material.content

    logger.info("AI tutor chat request (material context: %s)", bool(material_content))
    try:
        reply = ai_service.tutor_chat(data.message, material_content, data.history)
    except TutorError as e:
        logger.error("AI chat error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to get AI response")
    return ChatResponse(response=reply)


@app.post("/api/ai/summarize", response_model=SummaryResponse)
def ai_summarize(
    data: SummarizeRequest,
    storage: MemStorage = Depends(get_storage),
    ai_service: Optional[AIService] = Depends(get_ai_service),
):
    if ai_service is None:
        raise HTTPException(status_code=400, detail=AI_NOT_CONFIGURED)

    material = storage.get_study_material(data.material_id)
    if not material:
        raise HTTPException(status_code=404, detail="Study material not found")

    try:
        summary = ai_service.summarize_content(material.content, material.subject)
    except SummaryError as e:
        logger.error("AI summarize error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to summarize material")
    return SummaryResponse(summary=summary)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("studyhub.app:app", host="0.0.0.0", port=8000)
