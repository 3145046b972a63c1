"""
Unit tests for job deduplication.
"""

from applyflow.models.job import Job
from applyflow.utils.deduplication import deduplicate_jobs


def make_job(
    job_id, title="Go Engineer", company="Razorpay", url=None, location="Bengaluru"
):
    return Job(
        id=job_id,
        title=title,
        company=company,
        location=location,
        platform="LinkedIn",
        url=url if url is not None else f"https://jobs.example/{job_id}",
        match_score=80,
        salary="Not disclosed",
    )


def test_unique_jobs_are_kept_in_order():
    jobs = [make_job("a", title="SRE"), make_job("b", title="Go Engineer")]

    assert deduplicate_jobs(jobs) == jobs


def test_repeated_id_keeps_first():
    first = make_job("a", title="SRE")
    jobs = [first, make_job("a", title="Platform Engineer")]

    assert deduplicate_jobs(jobs) == [first]


def test_same_title_and_company_in_different_cities_are_kept():
    jobs = [
        make_job("a", title="Backend Engineer", company="Google", location="Bengaluru"),
        make_job("b", title="Backend Engineer", company="Google", location="Pune"),
    ]

    assert deduplicate_jobs(jobs) == jobs


def test_shared_board_url_is_not_a_duplicate():
    board = "https://www.naukri.com/go-developer-jobs"
    jobs = [
        make_job("a", title="SRE", url=board),
        make_job("b", title="Go Engineer", url=board),
    ]

    assert [job.id for job in deduplicate_jobs(jobs)] == ["a", "b"]


def test_empty_batch():
    assert deduplicate_jobs([]) == []
