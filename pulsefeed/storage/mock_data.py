"""
Demo records served in mock mode and by the degraded live store.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..database.models import Record, RecordKind

# (id, title, description, link, age_days, source, kind, author, categories)
_MOCK_ROWS = [
    (
        "mock-1",
        "Azure OpenAI Service Now Generally Available",
        "Azure OpenAI Service brings advanced AI capabilities to your applications "
        "with GPT-4, GPT-3.5-Turbo, and embeddings models.",
        "https://azure.microsoft.com/updates/azure-openai-ga",
        1, "Azure Updates", RecordKind.UPDATE, "",
        ["AI", "Azure", "Cognitive Services"],
    ),
    (
        "mock-2",
        "New Azure Functions Flex Consumption Plan",
        "The Flex Consumption plan offers improved cold start performance and more "
        "flexible scaling options for your serverless functions.",
        "https://azure.microsoft.com/updates/functions-flex",
        2, "Azure Updates", RecordKind.UPDATE, "",
        ["Compute", "Azure Functions", "Serverless"],
    ),
    (
        "mock-3",
        "Building Modern Web Apps with Azure and Vue.js",
        "Learn how to create scalable, responsive web applications using Vue.js 3 and "
        "Azure services including App Service, Functions, and CosmosDB.",
        "https://azure.microsoft.com/blog/vue-modern-apps",
        3, "Azure Blog", RecordKind.BLOG, "Azure Team",
        ["Development", "Azure", "Web Development"],
    ),
    (
        "mock-4",
        "Azure Container Apps Update: New Features",
        "Azure Container Apps now supports additional networking capabilities, "
        "improved observability, and enhanced scaling options.",
        "https://azure.microsoft.com/updates/container-apps-update",
        4, "Azure Updates", RecordKind.UPDATE, "",
        ["Compute", "Containers", "Azure"],
    ),
    (
        "mock-5",
        "Getting Started with Azure SDK for JavaScript",
        "A comprehensive guide to using the Azure SDK for JavaScript in your Node.js "
        "applications.",
        "https://devblogs.microsoft.com/azure-sdk/js-getting-started",
        5, "Azure SDK Blog", RecordKind.BLOG, "SDK Team",
        ["Development", "SDK", "JavaScript", "Azure"],
    ),
    (
        "mock-6",
        "Azure Integration Services: New Connectors Available",
        "New connectors for Azure Logic Apps and Azure Functions enable easier "
        "integration with popular SaaS applications.",
        "https://azure.microsoft.com/updates/integration-connectors",
        6, "Azure Updates", RecordKind.UPDATE, "",
        ["Integration", "Logic Apps", "Azure"],
    ),
    (
        "mock-7",
        "Microsoft Ignite Keynote: The Era of AI Agents",
        "Highlights from the Ignite keynote covering Azure AI Foundry, agent "
        "frameworks and new infrastructure announcements.",
        "https://www.youtube.com/watch?v=mock-ignite-keynote",
        7, "Microsoft Ignite", RecordKind.VIDEO, "Microsoft",
        ["Ignite", "Azure", "Cloud", "AI"],
    ),
    (
        "mock-8",
        "Microsoft Build: What's New for Azure Developers",
        "A tour of the developer tooling, SDK and platform updates announced at Build.",
        "https://www.youtube.com/watch?v=mock-build-developers",
        8, "Microsoft Build", RecordKind.VIDEO, "Microsoft",
        ["Build", "Azure", "Developer", "Innovation"],
    ),
]


def build_mock_records(now: Optional[datetime] = None) -> List[Record]:
    """Build the demo records, dated relative to `now`."""
    now = now or datetime.now(timezone.utc)
    return [
        Record(
            id=record_id,
            title=title,
            description=description,
            link=link,
            published_at=now - timedelta(days=age_days),
            source=source,
            kind=kind,
            author=author,
            categories=categories,
        )
        for (record_id, title, description, link, age_days, source, kind, author, categories) in _MOCK_ROWS
    ]
