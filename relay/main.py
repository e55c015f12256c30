import uvicorn

from relay.vars import HOST, PORT


def main():
    uvicorn.run("relay.server:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
