from smart_backend_auth import AuthExtension, GateConfig, InMemoryCache, build_gate

# Reads AUTH_SERVER_CERTS_ADDRESS, ADMIN_TOKEN, AUTH_SERVER_TOKEN_ADDRESS, ...
# from the environment (and .env, via python-dotenv)
CONFIG = GateConfig.from_env()

# one cache per process; swap for RedisCache when running several workers
gate = build_gate(CONFIG, cache=InMemoryCache())

# auth will be the ext imported in the Flask app
auth = AuthExtension(gate)
