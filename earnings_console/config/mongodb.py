from pymongo import MongoClient
from earnings_console.config.config import Config

# mongo client to connect with the db, connects lazily on first operation
mongo_client = MongoClient(Config.MONGO_DB_CONNECTION_STRING, connect=False)

# mongo db connection
earnings_console_db = mongo_client[f"{Config.MONGO_DB_NAME}"]

# connection with respective collections
withdrawal_attempts_collection = earnings_console_db["withdrawal_attempts"]
earning_watermarks_collection = earnings_console_db["earning_watermarks"]
