from setuptools import setup, find_packages

setup(
    name="stir_scenario_engine",
    version="0.1.0",
    description="STIR futures scenario engine: policy-path daily curves and SR1/SR3 strip analytics",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "requests",
        "pydantic>=2",
    ],
    extras_require={
        "test": ["pytest"],
    },
    python_requires=">=3.8",
)
