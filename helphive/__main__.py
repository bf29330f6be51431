import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "helphive.api:create_app",
        factory=True,
        host=os.getenv("HELPHIVE_HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3001")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
