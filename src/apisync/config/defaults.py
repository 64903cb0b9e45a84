"""Built-in defaults for tracking the Twilio API surface.

Everything here is plain data; ``apisync.config.settings`` wraps it in
validated models and lets a config file override any of it.
"""

from __future__ import annotations

OAI_OWNER = "twilio"
OAI_REPO = "twilio-oai"
OAI_SPEC_DIR = "spec/json"
GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"
NPM_REGISTRY_URL = "https://registry.npmjs.org"

# package role -> npm package name
PACKAGES: dict[str, str] = {
    "sdk": "twilio",
    "cli": "twilio-cli",
}

SDK_PINNED_RANGE = "^5.0.0"

TRACKED_DOMAINS: list[str] = [
    "twilio_api_v2010",         # calls, messages, numbers, conferences, recordings
    "twilio_messaging_v1",      # messaging services, sender pools, A2P
    "twilio_content_v1",
    "twilio_content_v2",
    "twilio_verify_v2",
    "twilio_lookups_v2",
    "twilio_trusthub_v1",
    "twilio_sync_v1",
    "twilio_taskrouter_v1",
    "twilio_studio_v2",
    "twilio_proxy_v1",
    "twilio_intelligence_v2",
    "twilio_video_v1",
    "twilio_serverless_v1",
    "twilio_notify_v1",
    "twilio_trunking_v1",
    "twilio_voice_v1",          # BYOC, dialing permissions, connection policies
    "twilio_accounts_v1",
    "twilio_pricing_v2",
    "twilio_numbers_v2",        # regulatory bundles, hosted numbers
    "twilio_monitor_v1",        # debugger alerts, events
]

# tool source file -> domains its tools may match
FILE_TO_DOMAINS: dict[str, list[str]] = {
    "accounts.ts": ["twilio_accounts_v1", "twilio_api_v2010"],
    "addresses.ts": ["twilio_api_v2010"],
    "content.ts": ["twilio_content_v1", "twilio_content_v2"],
    "debugger.ts": ["twilio_monitor_v1", "twilio_api_v2010"],
    "iam.ts": ["twilio_api_v2010", "twilio_accounts_v1"],
    "intelligence.ts": ["twilio_intelligence_v2"],
    "lookups.ts": ["twilio_lookups_v2"],
    "media.ts": ["twilio_video_v1"],
    "messaging-services.ts": ["twilio_messaging_v1"],
    "messaging.ts": ["twilio_api_v2010"],
    "notify.ts": ["twilio_notify_v1"],
    "phone-numbers.ts": ["twilio_api_v2010"],
    "pricing.ts": ["twilio_pricing_v2"],
    "proxy.ts": ["twilio_proxy_v1"],
    "regulatory.ts": ["twilio_numbers_v2"],
    "serverless.ts": ["twilio_serverless_v1"],
    "sip.ts": ["twilio_api_v2010"],
    "studio.ts": ["twilio_studio_v2"],
    "sync.ts": ["twilio_sync_v1"],
    "taskrouter.ts": ["twilio_taskrouter_v1"],
    "trunking.ts": ["twilio_trunking_v1"],
    "trusthub.ts": ["twilio_trusthub_v1"],
    "verify.ts": ["twilio_verify_v2"],
    "video.ts": ["twilio_video_v1"],
    "voice-config.ts": ["twilio_voice_v1"],
    "voice.ts": ["twilio_api_v2010", "twilio_intelligence_v2"],
}

# singular noun from a tool name -> resource segment in provider paths
NOUN_TO_PATH_SEGMENT: dict[str, str] = {
    "verification": "Verifications",
    "document": "Documents",
    "flow": "Flows",
    "execution": "Executions",
    "task": "Tasks",
    "worker": "Workers",
    "workflow": "Workflows",
    "workspace": "Workspaces",
    "session": "Sessions",
    "participant": "Participants",
    "interaction": "Interactions",
    "service": "Services",
    "room": "Rooms",
    "recording": "Recordings",
    "composition": "Compositions",
    "hook": "CompositionHooks",
    "track": "Tracks",
    "stream": "Streams",
    "conference": "Conferences",
    "call": "Calls",
    "message": "Messages",
    "sms": "Messages",
    "mms": "Messages",
    "number": "PhoneNumbers",
    "phone_number": "PhoneNumbers",
    "address": "Addresses",
    "account": "Accounts",
    "subaccount": "Accounts",
    "key": "Keys",
    "signing_key": "SigningKeys",
    "api_key": "Keys",
    "variable": "Variables",
    "build": "Builds",
    "environment": "Environments",
    "function": "Functions",
    "asset": "Assets",
    "log": "Logs",
    "binding": "Bindings",
    "notification": "Notifications",
    "alpha_sender": "AlphaSenders",
    "short_code": "ShortCodes",
    "trunk": "Trunks",
    "origination_url": "OriginationUrls",
    "credential_list": "CredentialLists",
    "ip_access_control_list": "IpAccessControlLists",
    "bundle": "RegulatoryCompliance/Bundles",
    "end_user": "EndUsers",
    "supporting_document": "SupportingDocuments",
    "regulation": "Regulations",
    "customer_profile": "CustomerProfiles",
    "trust_product": "TrustProducts",
    "entity_assignment": "EntityAssignments",
    "content_template": "Content",
    "template": "Content",
    "transcript": "Transcripts",
    "sentence": "Sentences",
    "operator_result": "OperatorResults",
    "dialing_permission": "DialingPermissions/Countries",
    "byoc_trunk": "ByocTrunks",
    "connection_policy": "ConnectionPolicies",
    "target": "Targets",
    "trigger": "Triggers",
    "balance": "Balance",
    "usage_record": "Usage/Records",
    "intelligence_service": "Services",
    "messaging_service": "Services",
    "proxy_service": "Services",
    "notify_service": "Services",
    "pricing_country": "Countries",
}

# placeholders that legitimately end collection paths (parent scopes)
SCOPING_PLACEHOLDERS: list[str] = ["AccountSid", "ServiceSid", "WorkspaceSid"]

PAGINATION_PARAMS: list[str] = ["page", "pagesize", "pagetoken", "limit"]

# numbered repeating groups such as Parameter1.Name, Parameter2.Name
INDEXED_PARAM_PATTERN = r"^[A-Za-z]+\d+\."

BREAKING_MARKER = "**(breaking change)**"

TOOL_DEFINITION_CALL = "createTool"
CLIENT_NAME = "client"
SCHEMA_MARKER = "z.object("
TOOL_FILE_GLOB = "*.ts"
# non-API helper tools
EXCLUDED_TOOL_FILES: list[str] = ["validation.ts"]
