from fastapi import Request


def extract_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def extract_client_ip_from_environ(environ: dict) -> str:
    forwarded_for = str(environ.get("HTTP_X_FORWARDED_FOR", "")).strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = str(environ.get("HTTP_X_REAL_IP", "")).strip()
    if real_ip:
        return real_ip
    remote_addr = str(environ.get("REMOTE_ADDR", "")).strip()
    return remote_addr or "unknown"
