"""
main.py — 모의고사 CBT 터미널 앱 진입점

로컬 응시 저장소(FastAPI)를 백그라운드 스레드로 띄우고,
터미널에서 응시 1회를 진행한다.

사용법:
    python main.py [test_id] [--user USER_ID] [--attempt ATTEMPT_ID] [--api URL]
"""

import argparse
import asyncio
import logging
import socket
import sys
import threading
import time
import traceback

from config import DEFAULT_HOST, LOG_FILE

# ── 로깅 설정 ────────────────────────────────────────────────────────────────
_console_handler = logging.StreamHandler(sys.stderr)
_console_handler.setLevel(logging.WARNING)  # 터미널 화면에는 경고 이상만

try:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE, encoding='utf-8'),
            _console_handler
        ]
    )
except PermissionError:
    # 로그 파일 점유 시 콘솔 출력만 사용
    logging.basicConfig(level=logging.WARNING)

logger = logging.getLogger(__name__)

# ── 서버 및 네트워크 유틸 ───────────────────────────────────────────────────

def _find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind((DEFAULT_HOST, 0))
        return s.getsockname()[1]

def _wait_for_server(port: int, timeout: float = 15.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            with socket.create_connection((DEFAULT_HOST, port), timeout=0.5):
                return True
        except OSError:
            time.sleep(0.1)
    return False

def _start_server(port: int) -> None:
    try:
        import uvicorn
        from api.app import create_app
        logger.info(f"Uvicorn 서버 시작 - Port: {port}")
        app = create_app()
        uvicorn.run(app, host=DEFAULT_HOST, port=port, log_level="error")
    except Exception:
        logger.error(f"서버 오류 발생:\n{traceback.format_exc()}")

def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mock test CBT: timed exam attempt")
    parser.add_argument("test_id", nargs="?", default="general-aptitude")
    parser.add_argument("--user", default="demo-user", help="로컬 저장소 사용자 ID (Bearer 토큰)")
    parser.add_argument("--attempt", default=None, help="이어서 응시할 attempt ID")
    parser.add_argument("--api", default=None, help="외부 응시 저장소 URL (지정 시 로컬 서버 생략)")
    return parser.parse_args(argv)

# ── 메인 실행 ────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    args = _parse_args()
    logger.info("=== Mock Test CBT Started ===")

    base_url = args.api
    if base_url is None:
        port = _find_free_port()
        server_thread = threading.Thread(target=_start_server, args=(port,), daemon=True)
        server_thread.start()
        if not _wait_for_server(port):
            logger.error("서버 시작 제한 시간을 초과했습니다.")
            sys.exit(1)
        logger.info("서버 준비 완료. 응시를 시작합니다.")
        base_url = f"http://{DEFAULT_HOST}:{port}/api"

    from mock_test_cbt.views.exam_view import run_exam

    try:
        asyncio.run(run_exam(args.test_id, base_url=base_url, token=args.user, attempt_id=args.attempt))
    except KeyboardInterrupt:
        logger.info("사용자에 의해 종료되었습니다.")
