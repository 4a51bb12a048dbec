# The state a new installation starts out with, before any migrations are applied. As the
# migrations bring this up to date it needs to stay in the original version 0 layout.
FIRST_TIME_STATE = {
    "config": {
        "provider": {
            "type": "mainnet",
        },
    },
}
