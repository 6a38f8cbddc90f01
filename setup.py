from setuptools import setup, find_packages

setup(
    name="glif-cond",
    version="0.1.0",
    description="Conductance-based generalized leaky integrate-and-fire (GLIF) point neuron",
    packages=find_packages(include=["models", "synapses", "circuit",
                                    "analysis", "experiments"]),
    py_modules=["run_all"],
    python_requires=">=3.8",
    install_requires=[
        "numpy",
        "scipy",
        "matplotlib",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
