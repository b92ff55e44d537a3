"""Shared constants for MCP Explorer."""

CLIENT_NAME = "MCP Explorer"
CLIENT_VERSION = "0.1.0"
TOOL_SERVER_NAME = "McpExplorer"

# Logging defaults
LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"

# Tool server connection timeouts
MCP_INIT_TIMEOUT = 15.0  # seconds for MCP session initialization
DISCOVER_TIMEOUT = 10.0  # seconds for the tools/list round trip
CALL_TIMEOUT = 60.0  # seconds for a single tools/call round trip

# Heuristic selection defaults
OPTIMIZE_MARKER = "Optimize"
EMAIL_MARKER = "Email"
CHAT_MARKER = "Teams"
EMAIL_KEYWORDS = ("sincerely", "regards", "hello", "dear")
LONG_TEXT_THRESHOLD = 100  # characters; longer input reads as an email

# Tool names exposed by the bundled tool server
TRANSCRIBE_TOOL = "TranscribeAudio"
EMAIL_TOOL = "OptimizeForEmail"
TEAMS_TOOL = "OptimizeForTeams"

# Prompt templates
PROMPTS_DIR_ENV = "MCP_EXPLORER_PROMPTS_DIR"
PROMPT_PLACEHOLDER = "{{text}}"

# Oracle (LLM) defaults
OPENAI_BASE_URL = "https://api.openai.com/v1"
AZURE_API_VERSION = "2024-06-01"
ORACLE_TIMEOUT = 30.0
SUPPORTED_PROVIDERS = ("OpenAI", "AzureOpenAI")

# Config discovery
CONFIG_ENV = "MCP_EXPLORER_CONFIG"
