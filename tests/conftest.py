"""
Pytest configuration and shared fixtures.

Jobs are stored in a throwaway SQLite database per test; website research and
draft generation are replaced with in-memory fakes.
"""

import asyncio
import re

import pytest

from bulk_outreach.config import ProcessingConfig
from bulk_outreach.database.connection import DatabaseConfig, DatabaseManager
from bulk_outreach.database.services import BulkJobStore
from bulk_outreach.errors import GenerationError
from bulk_outreach.job_processor import BulkJobController
from bulk_outreach.scraper import CompanyFacts, placeholder_facts


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "db: uses a temporary SQLite database")


def three_email_response(company: str) -> str:
    return "\n".join([
        "EMAIL 1:",
        "SUBJECT: Quick Idea",
        "BODY:",
        f"Saw what {company} is building. Open to a different approach?",
        "",
        "EMAIL 2:",
        "SUBJECT: your pipeline",
        "BODY:",
        f"Teams like {company} often lose hours to manual work. Worth a look?",
        "",
        "EMAIL 3:",
        "SUBJECT: better way",
        "BODY:",
        "There might be a simpler way to handle this. Open to learning more?",
    ])


class FakeResearcher:
    """Returns canned facts; raises for URLs listed in fail_for"""

    def __init__(self, fail_for=()):
        self.fail_for = set(fail_for)
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        if url in self.fail_for:
            raise RuntimeError(f"cannot reach {url}")
        if "sender" in url:
            facts = CompanyFacts(
                url=url,
                company_name="Sender Co",
                description="We automate invoice matching",
                key_points=["Invoice automation"],
            )
            return facts
        return placeholder_facts(url, "Prospect Co", description="A prospect company")

    async def aclose(self):
        pass


PROSPECT_COMPANY_LINE = re.compile(r"Company: (.*)\n")


class FakeGenerator:
    """
    Generates three emails that name the prospect company found in the prompt

    Prompts mentioning a company in fail_companies raise GenerationError;
    prompts mentioning one in empty_companies get an empty response. With
    stagger set, earlier calls sleep longer so concurrent calls finish in
    reverse order; finished companies are recorded in completed.
    """

    def __init__(self, fail_companies=(), empty_companies=(), stagger=0.0):
        self.fail_companies = set(fail_companies)
        self.empty_companies = set(empty_companies)
        self.stagger = stagger
        self.prompts = []
        self.completed = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.stagger:
            await asyncio.sleep(self.stagger * max(0, 50 - len(self.prompts)))
        for company in self.fail_companies:
            if f"Company: {company}\n" in prompt:
                raise GenerationError(f"model refused for {company}")
        for company in self.empty_companies:
            if f"Company: {company}\n" in prompt:
                return "   "
        match = PROSPECT_COMPANY_LINE.search(prompt)
        company = match.group(1).strip() if match else ""
        self.completed.append(company)
        return three_email_response(company or "your team")

    async def transform_value_proposition(self, what_we_do):
        return f"Outcome: {what_we_do}"


def make_records(count, start=1):
    return [
        {
            "first_name": f"First{n}",
            "last_name": f"Last{n}",
            "email": f"person{n}@company{n}.com",
            "job_title": "CTO",
            "company_name": f"Company{n}",
            "website": f"https://company{n}.com",
            "city": "Austin",
            "country": "USA",
        }
        for n in range(start, start + count)
    ]


def make_config(chunk_size=10, parallel_batch_size=5, max_prospects=5000):
    config = ProcessingConfig()
    config.chunk_size = chunk_size
    config.parallel_batch_size = parallel_batch_size
    config.batch_delay_seconds = 0
    config.max_prospects = max_prospects
    return config


JOB_FIELDS = {
    "sender_url": "https://sender.example.com",
    "what_we_do": "We automate invoice matching",
    "intent": "Book a short demo",
    "style_slug": "show-me-you-know-me",
}


@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(DatabaseConfig(url=f"sqlite:///{tmp_path / 'jobs.db'}"))
    assert manager.create_tables()
    yield manager
    manager.close()


@pytest.fixture
def store(db_manager):
    return BulkJobStore(db_manager)


@pytest.fixture
def researcher():
    return FakeResearcher()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def make_controller(store, researcher):
    """Build a controller over the shared store with per-test settings"""
    def _make(generator=None, chunk_size=10, parallel_batch_size=5, max_prospects=5000, **kwargs):
        return BulkJobController(
            store=store,
            researcher=kwargs.pop("researcher", researcher),
            generator=generator or FakeGenerator(),
            config=make_config(chunk_size, parallel_batch_size, max_prospects),
            **kwargs
        )
    return _make


@pytest.fixture
def controller(make_controller):
    return make_controller()
