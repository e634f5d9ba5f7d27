"""Setup script for SLI Streams."""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
  long_description = fh.read()

setup(
  name="sli-streams",
  version="0.1.0",
  author="SLI Streams Contributors",
  description="Declarative service level indicators computed from live metric streams",
  long_description=long_description,
  long_description_content_type="text/markdown",
  packages=find_packages(include=["engine", "engine.*", "connectors", "connectors.*", "apps", "apps.*"]),
  py_modules=["sli_cli"],
  python_requires=">=3.11",
  install_requires=[
    "httpx>=0.25.0",
    "pydantic>=2.5",
    "redis>=5.0.1",
    "rich>=13.0.0",
  ],
  extras_require={
    "test": [
      "pytest>=7.4",
      "pytest-asyncio>=0.23",
      "fakeredis>=2.20",
    ],
  },
  entry_points={
    "console_scripts": [
      "sli=sli_cli:main",
      "sli-runtime=apps.runtime.runtime_entry:main",
    ],
  },
  classifiers=[
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Topic :: System :: Monitoring",
    "License :: OSI Approved :: Apache Software License",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
  ],
)
