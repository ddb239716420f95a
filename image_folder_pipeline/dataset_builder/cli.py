from typing import Optional

import typer
from pydantic import ValidationError

from image_folder_pipeline.lib import (
    ConfigurationError,
    configure_logging,
    load_config_file,
    setup_logger,
)

from .builder import DatasetBuilder
from .config import DatasetConfig
from .validator import format_report

app = typer.Typer(help="Dataset Discovery, Validation and Splitting Component")

logger = setup_logger(__name__)


def _load_dataset_config(config_file: Optional[str]) -> DatasetConfig:
    try:
        config_data = load_config_file(config_file) if config_file else {}
        return DatasetConfig.model_validate(config_data)
    except (ConfigurationError, ValidationError) as e:
        typer.echo(f"Configuration validation error: {e}")
        raise typer.Exit(code=1)


@app.command()
def validate(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    config_file: Optional[str] = typer.Option(
        None, help="Path to a dataset configuration file (YAML/JSON)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logs"),
):
    """
    Check that every class directory holds enough images for training.
    """
    configure_logging(verbose)
    config = _load_dataset_config(config_file)

    report = DatasetBuilder(config).validate(image_dir)
    for line in format_report(report):
        typer.echo(line)

    if not report.is_valid:
        raise typer.Exit(code=1)


@app.command()
def split(
    image_dir: str = typer.Argument(..., help="Path to the root image directory"),
    output_dir: str = typer.Argument(..., help="Path to save the split manifests"),
    config_file: Optional[str] = typer.Option(
        None, help="Path to a dataset configuration file (YAML/JSON)"
    ),
    test_fraction: Optional[float] = typer.Option(None, help="Ratio of test data"),
    validation_fraction: Optional[float] = typer.Option(
        None, help="Ratio of validation data"
    ),
    seed: Optional[int] = typer.Option(None, help="Random seed for reproducibility"),
    stratify: Optional[bool] = typer.Option(
        None, "--stratify/--no-stratify", help="Keep class proportions in every split"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logs"),
):
    """
    Split a dataset into train, validation and test manifests (JSONL).
    """
    configure_logging(verbose)
    try:
        config_data = load_config_file(config_file) if config_file else {}

        # CLI options override the configuration file
        split_data = dict(config_data.get("split") or {})
        if test_fraction is not None:
            split_data["test"] = test_fraction
        if validation_fraction is not None:
            split_data["validation"] = validation_fraction
        config_data["split"] = split_data
        if seed is not None:
            config_data["seed"] = seed
        if stratify is not None:
            config_data["stratify"] = stratify

        try:
            config = DatasetConfig.model_validate(config_data)
        except ValidationError as e:
            typer.echo(f"Configuration validation error: {e}")
            raise typer.Exit(code=1)

        builder = DatasetBuilder(config)
        report = builder.validate(image_dir)
        if not report.is_valid:
            for line in format_report(report):
                typer.echo(line)
            raise typer.Exit(code=1)
        for warning in report.warnings:
            logger.warning(warning)

        dataset = builder.build(image_dir)
        builder.save(dataset, output_dir)

        typer.echo(f"Dataset successfully split and saved to {output_dir}")
        typer.echo(f"  - Train set: {len(dataset.train)} images")
        typer.echo(f"  - Validation set: {len(dataset.validation)} images")
        typer.echo(f"  - Test set: {len(dataset.test)} images")

    except typer.Exit:
        raise
    except Exception as e:
        typer.echo(f"Error: {e}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
