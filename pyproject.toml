[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "repstar"
version = "0.1.0"
description = "Testimonial collection service with semantic search, AI insights and engagement metrics"
requires-python = ">=3.10"
keywords = ["testimonials", "feedback", "reviews", "insights", "embeddings", "flask", "postgresql"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
]
dependencies = [
    "flask",
    "sqlalchemy",
    "python-dotenv",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
repstar-server = "repstar.server:main"

[tool.hatch.build.targets.wheel]
packages = ["repstar"]

[tool.pytest.ini_options]
addopts = "-ra"
