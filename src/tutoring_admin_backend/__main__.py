'''
Runs the API with uvicorn: `python -m tutoring_admin_backend`.
'''
import uvicorn

from .common.config import settings


def main():
    uvicorn.run("tutoring_admin_backend.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    main()
