import uvicorn

from doh_forwarder.vars import HOST, PORT


def main() -> None:
    uvicorn.run("doh_forwarder.server:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
