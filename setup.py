"""Setup configuration for gh_pr_metrics"""

from setuptools import setup, find_packages

setup(
    name="github-pr-metrics",
    version="0.1.0",
    description=(
        "CLI tool for GitHub pull request process metrics: merge and lead "
        "time, review latency, review cycles, CI outcome, change size and "
        "issue label breakdowns."
    ),
    author="GitHub PR Metrics Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "github-pr-metrics=gh_pr_metrics.main:main",
        ],
    },
)
