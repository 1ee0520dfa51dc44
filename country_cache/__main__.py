import uvicorn

from country_cache import config


def main():
    config.validate_config()
    uvicorn.run("country_cache.main:app", host=config.HOST, port=config.server_port())


if __name__ == "__main__":
    main()
