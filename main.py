import logging
import sys
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from jinja2 import TemplateError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import Settings, get_settings
from database import check_connection, create_engine, create_sessionmaker, create_tables
from errors import BadRequest, PostboardError, StartupError, from_status, status_code_for
from schemas import PostCreate, PostResponse
from storage import PostRepository, get_repository

logger = logging.getLogger(__name__)

TEMPLATE_NAMES = ("home.html", "new.html", "view.html", "error.html")


@dataclass
class AppContext:
    """Everything a request handler shares with the rest of the process."""

    settings: Settings
    engine: AsyncEngine
    sessionmaker: async_sessionmaker[AsyncSession]
    templates: Jinja2Templates


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def load_templates(directory: Path) -> Jinja2Templates:
    templates = Jinja2Templates(directory=directory)
    for name in TEMPLATE_NAMES:
        try:
            templates.get_template(name)
        except TemplateError as e:
            raise StartupError(f"Cannot load template {name!r} from {directory}: {e}") from e
    logger.info("Loaded templates from %s", directory)
    return templates


router = APIRouter()


@router.get("/", include_in_schema=False, name="home")
async def home(
    request: Request,
    context: Annotated[AppContext, Depends(get_context)],
    posts: Annotated[PostRepository, Depends(get_repository)],
):
    return context.templates.TemplateResponse(
        request,
        "home.html",
        {"posts": await posts.list_posts(), "title": "Home"}
    )


@router.get("/post/new", include_in_schema=False, name="new_post")
async def new_post(request: Request, context: Annotated[AppContext, Depends(get_context)]):
    return context.templates.TemplateResponse(request, "new.html", {"title": "New post"})


@router.post("/post/create", include_in_schema=False, name="create_post")
async def create_post(request: Request, posts: Annotated[PostRepository, Depends(get_repository)]):
    form = await request.form()
    title = form.get("title")
    content = form.get("content")
    # empty strings are stored as given, only absent fields are rejected
    if not isinstance(title, str) or not isinstance(content, str):
        raise BadRequest("Both title and content are required")
    await posts.create_post(title, content)
    return RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/post/view", include_in_schema=False, name="view_post")
async def view_post(
    request: Request,
    post_id: Annotated[int, Query(alias="id")],
    context: Annotated[AppContext, Depends(get_context)],
    posts: Annotated[PostRepository, Depends(get_repository)],
):
    post = await posts.get_post(post_id)
    return context.templates.TemplateResponse(
        request,
        "view.html",
        {"post": post, "title": post.title[:50]}
    )


@router.get("/api/posts", response_model=list[PostResponse])
async def api_get_posts(posts: Annotated[PostRepository, Depends(get_repository)]):
    return await posts.list_posts()


@router.post("/api/post", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def api_create_post(request: Request, posts: Annotated[PostRepository, Depends(get_repository)]):
    # the body is decoded as JSON whatever Content-Type the client sent
    try:
        post = PostCreate.model_validate_json(await request.body())
    except ValidationError as e:
        logger.debug("Rejected post body: %s", e.errors())
        raise BadRequest("Invalid request body") from e
    return await posts.create_post(post.title, post.content)


@asynccontextmanager
async def lifespan(app: FastAPI):
    context: AppContext = app.state.context
    try:
        await check_connection(context.engine)
        if context.settings.create_tables:
            await create_tables(context.engine)
        yield
    finally:
        await context.engine.dispose()


def error_response(request: Request, status_code: int, message: str, headers: dict[str, str] | None = None):
    if request.url.path.startswith("/api"):
        return JSONResponse({"detail": message}, status_code=status_code, headers=headers)

    return request.app.state.context.templates.TemplateResponse(
        request,
        "error.html",
        {
            "status_code": status_code,
            "title": status_code,
            "message": message,
        },
        status_code=status_code,
        headers=headers,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    templates = load_templates(settings.templates_dir)
    engine = create_engine(settings)

    app = FastAPI(title="Postboard", lifespan=lifespan)
    app.state.context = AppContext(
        settings=settings,
        engine=engine,
        sessionmaker=create_sessionmaker(engine),
        templates=templates,
    )
    app.include_router(router)

    @app.exception_handler(PostboardError)
    async def postboard_error_handler(request: Request, exception: PostboardError):
        return error_response(request, status_code_for(exception), exception.message)

    @app.exception_handler(StarletteHTTPException)
    async def general_http_exception_handler(request: Request, exception: StarletteHTTPException):
        error = from_status(exception.status_code)
        message = error.message if error else exception.detail
        return error_response(request, exception.status_code, message, exception.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exception: RequestValidationError):
        error = BadRequest("Invalid request. Please check your input and try again")
        logger.debug("Rejected %s %s: %s", request.method, request.url.path, exception.errors())
        return error_response(request, status_code_for(error), error.message)

    return app


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def main() -> None:
    try:
        settings = get_settings()
        configure_logging(settings.log_level)
        app = create_app(settings)
    except StartupError as e:
        logging.basicConfig()
        logger.critical("%s", e)
        sys.exit(1)

    logger.info("Starting server on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
