"""PsyCare services.

- chat_router: POST /api/chat, routes each message to booking, crisis
  escalation or ordinary chat
- llm_service: Reply providers and the Tier 2 suicidality classifier
- translation_service: Outbound reply translation
- notification_service: SOS e-mail alerts for crisis escalations
"""
