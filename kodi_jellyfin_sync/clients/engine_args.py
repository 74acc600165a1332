def connect_args_for(url: str, timeout: int) -> dict:
    """DBAPI connect() arguments for the driver named in a SQLAlchemy URL."""
    if url.startswith("sqlite"):
        return {"timeout": timeout}
    if url.startswith("mysql"):
        return {"connect_timeout": timeout}
    return {}
