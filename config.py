import os

# 기본 디렉토리 설정
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# 경로 설정
LOG_FILE = os.path.join(BASE_DIR, "launch.log")

# 서버 설정 (로컬 응시 저장소)
DEFAULT_HOST = os.getenv("HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("PORT", "5000"))

# 응시 저장소 API 설정
API_BASE_URL = os.getenv("API_BASE_URL", f"http://{DEFAULT_HOST}:{DEFAULT_PORT}/api")
API_TOKEN = os.getenv("API_TOKEN", "")
DEFAULT_TIMEOUT = float(os.getenv("API_TIMEOUT", "15.0"))

# 시험 세션 설정
DEFAULT_DURATION_MINUTES = 60   # durationMinutes 누락 시 기본값
TICK_INTERVAL_SECONDS = 1.0
AUTO_SUBMIT_RETRY_SECONDS = float(os.getenv("AUTO_SUBMIT_RETRY_SECONDS", "5.0"))

# 타이머 경고 기준 (초)
TIMER_WARNING_SECONDS = 600     # 10분 미만이면 경고
TIMER_CRITICAL_SECONDS = 300    # 5분 미만이면 위험
