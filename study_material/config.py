"""
Study Material Platform Configuration
Database, auth, media storage and code runner settings
"""

import os
from dotenv import load_dotenv

load_dotenv()

# MongoDB
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017/study-material")
MONGODB_DB = os.getenv("MONGODB_DB", "study-material")

# JWT
JWT_SECRET = os.getenv("JWT_SECRET", "your-secret-key")
JWT_ALGORITHM = "HS256"
USER_TOKEN_EXPIRE_DAYS = 7
ADMIN_TOKEN_EXPIRE_HOURS = 24
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "10"))

# Admin console credentials (bcrypt hash of "password" unless overridden)
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@studymaterial.com")
ADMIN_PASSWORD_HASH = os.getenv(
    "ADMIN_PASSWORD_HASH",
    "$2a$10$92IXUNpkjO0rOQ5byMi.Ye4oKoEa3Ro9llC/.og/at2.uheWG/igi"
)
ADMIN_NAME = os.getenv("ADMIN_NAME", "Admin User")

# Every piece of content is attributed to this fixed admin id
CONTENT_AUTHOR_ID = "507f1f77bcf86cd799439011"

# Cloudinary
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "study-material")
MAX_IMAGE_BYTES = 5 * 1024 * 1024
MAX_IMAGES_ON_CREATE = 5
MAX_IMAGES_ON_UPDATE = 10

# Piston code runner
PISTON_API_URL = os.getenv("PISTON_API_URL", "https://emkc.org/api/v2/piston")
JAVA_VERSION = "15.0.2"
EXECUTE_TIMEOUT_SECONDS = 15.0
VALIDATE_TIMEOUT_SECONDS = 12.0
RUNTIMES_TIMEOUT_SECONDS = 5.0
COMPILE_TIMEOUT_MS = 10000
RUN_TIMEOUT_MS = 3000

# Server
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
CLIENT_BUILD_DIR = os.getenv("CLIENT_BUILD_DIR", "client/build")
PORT = int(os.getenv("PORT", "5000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
