from setuptools import setup, find_packages

setup(
    name="repair-desk",
    version="1.0.0",
    packages=find_packages(include=["repair_desk", "repair_desk.*"]),
    install_requires=[
        "pydantic>=2.0",
        "pydantic-settings>=2.0",
        "supabase>=2.10",
        "httpx>=0.24",
        "python-dotenv>=1.0",
        "fastapi>=0.100",
        "uvicorn>=0.20",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    python_requires=">=3.9",
)
