from pydantic_settings import BaseSettings
from dotenv import load_dotenv, find_dotenv

# Load environment variables from .env file, silent if no file is found
load_dotenv(find_dotenv())

class Settings(BaseSettings):
    # App Information
    app_name: str = "Face Login Service"
    log_level: str = "INFO"

    # Baidu AI Face credentials
    baidu_app_id: str = ""
    baidu_api_key: str = ""
    baidu_secret_key: str = ""

    # Baidu AI Face endpoints
    baidu_api_base_url: str = "https://aip.baidubce.com"
    baidu_request_timeout: float = 10.0

    # Face Recognition Settings
    face_group_id: str = "default"
    confidence_threshold: float = 92.0
    max_upload_size: int = 10 * 1024 * 1024  # 10MB

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
