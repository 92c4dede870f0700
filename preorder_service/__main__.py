"""Runs the API with uvicorn: `python -m preorder_service`."""

import uvicorn

from .config import HOST, PORT


def run():
    uvicorn.run("preorder_service.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
