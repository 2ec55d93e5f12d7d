# =======================================================================================
# sedp/__main__.py - Run the API with uvicorn
# =======================================================================================
import uvicorn

from .config import config


def main():
    uvicorn.run("sedp.main:app", host=config.API_HOST, port=config.API_PORT, reload=config.API_DEBUG)


if __name__ == "__main__":
    main()
