from datetime import datetime, timezone

from policybrief.models import Candidate

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_candidate(title="Senate passes farm bill", description="Lawmakers approved the measure.",
                   source="Reuters", url=None, published=None, **kwargs) -> Candidate:
    slug = "-".join(title.lower().split())[:60]
    return Candidate(
        title=title,
        description=description,
        source=source,
        url=url or f"https://news.example.com/{slug}",
        published=published,
        **kwargs,
    )


def words(n: int, word: str = "policy") -> str:
    return " ".join([word] * n)
