"""Weekday research topics and schedule gating."""

from datetime import date

from daily_research.exceptions import ConfigurationError
from daily_research.models import Topic

RESEARCH_TOPICS: tuple[Topic, ...] = (
    Topic(
        id="ai-tools",
        name="AI Development Tools & LangChain Ecosystem",
        description="Latest AI tools, LangChain/LangGraph updates, and development frameworks",
        focus_areas=(
            "LangChain and LangGraph framework updates",
            "AI development tools and SDKs",
            "AI agent frameworks and orchestration",
            "Vector databases and RAG implementations",
            "AI debugging and monitoring tools",
            "Model Context Protocols (MCP) for AI",
        ),
        search_terms=(
            "LangChain updates 2025",
            "LangGraph new features",
            "AI development tools",
            "vector database tools",
            "RAG implementation frameworks",
            "AI agent development",
            "Model Context Protocols AI",
        ),
        day_of_week=1,
    ),
    Topic(
        id="devops-automation",
        name="DevOps, CI/CD & Development Automation",
        description="DevOps tools, CI/CD improvements, and development automation",
        focus_areas=(
            "GitHub Actions and CI/CD improvements",
            "Docker and containerization tools",
            "Kubernetes development tools",
            "Infrastructure monitoring and observability",
            "Development environment automation",
            "Security and compliance tools",
        ),
        search_terms=(
            "GitHub Actions new features",
            "Docker development tools",
            "Kubernetes developer experience",
            "observability tools 2025",
            "development automation",
            "DevSecOps tools",
        ),
        day_of_week=2,
    ),
    Topic(
        id="aws-serverless",
        name="AWS & Serverless Architecture (SST Focus)",
        description="AWS services, serverless patterns, and SST (Serverless Stack) updates",
        focus_areas=(
            "SST (Serverless Stack) framework updates",
            "AWS Lambda and serverless patterns",
            "AWS CDK and infrastructure as code",
            "API Gateway and serverless APIs",
            "DynamoDB and serverless databases",
            "AWS AI/ML services integration",
        ),
        search_terms=(
            "SST Serverless Stack updates",
            "AWS Lambda new features",
            "AWS CDK patterns",
            "serverless architecture 2025",
            "AWS API Gateway improvements",
            "DynamoDB best practices",
        ),
        day_of_week=3,
    ),
    Topic(
        id="react-ecosystem",
        name="React/Next.js & TypeScript Ecosystem",
        description="React, Next.js, TypeScript tools and best practices",
        focus_areas=(
            "React 19+ features and tools",
            "Next.js App Router and server components",
            "TypeScript tooling improvements",
            "State management solutions",
            "Testing frameworks (Vitest, Playwright)",
            "Performance optimization tools",
            "Model Context Protocols (MCP) for React/TypeScript",
        ),
        search_terms=(
            "React 19 new features",
            "Next.js App Router tools",
            "TypeScript development tools",
            "Vitest testing updates",
            "Playwright automation",
            "React performance tools",
            "Model Context Protocols React TypeScript",
        ),
        day_of_week=4,
    ),
    Topic(
        id="vscode-productivity",
        name="VS Code Extensions & Developer Productivity",
        description="VS Code extensions, IDE improvements, and developer productivity tools",
        focus_areas=(
            "VS Code extensions for AI development",
            "Code quality and formatting tools",
            "Git and version control enhancements",
            "API development and testing tools",
            "Code generation and AI assistance",
            "Developer workflow optimization",
            "Model Context Protocols (MCP) for VS Code",
        ),
        search_terms=(
            "VS Code AI extensions",
            "Prettier and ESLint updates",
            "Git productivity tools",
            "API testing tools",
            "code generation tools",
            "developer productivity 2025",
            "Model Context Protocols VS Code",
        ),
        day_of_week=5,
    ),
)

DAY_ABBREVIATIONS: dict[str, int] = {
    "mon": 1,
    "tue": 2,
    "wed": 3,
    "thu": 4,
    "fri": 5,
    "monday": 1,
    "tuesday": 2,
    "wednesday": 3,
    "thursday": 4,
    "friday": 5,
}

WEEKDAYS = frozenset(DAY_ABBREVIATIONS.values())


def get_topic_by_day(day_of_week: int) -> Topic | None:
    """Topic scheduled for a weekday number (Monday = 1), or None."""
    return next((topic for topic in RESEARCH_TOPICS if topic.day_of_week == day_of_week), None)


def get_topic_by_day_abbr(day_abbr: str) -> Topic | None:
    """Topic for 'mon'..'fri' or a full weekday name, case-insensitive."""
    day_number = DAY_ABBREVIATIONS.get(day_abbr.strip().lower())
    return get_topic_by_day(day_number) if day_number else None


def parse_schedule(value: str | None) -> frozenset[int] | None:
    """Parse a SCHEDULE value such as "mon,thu" into weekday numbers.

    Returns None when no restriction is configured.

    Raises:
        ConfigurationError: If a token is not a weekday name.
    """
    if not value or not value.strip():
        return None

    days: set[int] = set()
    unknown: list[str] = []
    for token in value.split(","):
        token = token.strip().lower()
        if not token:
            continue
        if token in DAY_ABBREVIATIONS:
            days.add(DAY_ABBREVIATIONS[token])
        else:
            unknown.append(token)

    if unknown:
        raise ConfigurationError(
            f"Invalid SCHEDULE value: unknown day(s) {', '.join(unknown)}",
            problems=[f"SCHEDULE: unknown day '{token}'" for token in unknown],
        )
    return frozenset(days) or None


def should_run_on(day: date, schedule: frozenset[int] | None = None) -> bool:
    """Whether research is scheduled on ``day``; weekends never run."""
    weekday = day.isoweekday()
    if weekday not in WEEKDAYS:
        return False
    return schedule is None or weekday in schedule


def get_current_topic(
    day_override: str | None = None,
    schedule: frozenset[int] | None = None,
    today: date | None = None,
) -> Topic | None:
    """Resolve the topic for this run.

    A day override ignores the schedule. Without one, the schedule decides
    whether anything runs today.
    """
    if day_override:
        return get_topic_by_day_abbr(day_override)

    today = today or date.today()
    if not should_run_on(today, schedule):
        return None
    return get_topic_by_day(today.isoweekday())
