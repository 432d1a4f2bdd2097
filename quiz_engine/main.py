import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quiz_engine.config import APP_TITLE, HOST, PORT
from quiz_engine.errors import QuizEngineError
from quiz_engine.logging_config import configure_logging

from quiz_engine.routes.teacher.quiz import router as teacher_quiz_router
from quiz_engine.routes.teacher.question import router as teacher_question_router
from quiz_engine.routes.teacher.grading import router as teacher_grading_router

from quiz_engine.routes.student.quiz_attempt import router as student_quiz_attempt_router


logger = configure_logging()

app=FastAPI(
    title=APP_TITLE
)


@app.exception_handler(QuizEngineError)
async def quiz_engine_error_handler(request: Request, exc: QuizEngineError):
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )


@app.get("/")
def root():
    return {
        "message":"Quiz Attempt Engine is Running!"
        }


app.include_router(teacher_quiz_router)
app.include_router(teacher_question_router)
app.include_router(teacher_grading_router)

app.include_router(student_quiz_attempt_router)


def serve():
    """Entry point of the `quiz-engine` console script."""
    uvicorn.run(app, host=HOST, port=PORT, log_config=None)


if __name__ == "__main__":
    serve()
