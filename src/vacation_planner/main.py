"""
Main Entry Point for the Vacation Planner

Wires the data manager, planner and report generator together and
provides a console front end with logging and error handling.
"""

import argparse
import sys
import logging
import traceback
from pathlib import Path
from datetime import datetime
from typing import List, Optional

from vacation_planner.calendar_utils import Period, format_date, parse_date
from vacation_planner.data_manager import DataManager, DataManagerError
from vacation_planner.planner import FairSharePlanner
from vacation_planner.reporting import ReportGenerator


def setup_logging(log_dir: Path = Path("logs"), level: int = logging.INFO):
    """Setup application logging"""
    log_dir.mkdir(exist_ok=True)

    log_file = log_dir / f"vacation_planner_{datetime.now().strftime('%Y%m%d')}.log"

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler(sys.stdout)
        ]
    )

    return logging.getLogger(__name__)


def handle_exception(exc_type, exc_value, exc_traceback):
    """Global exception handler"""
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logger = logging.getLogger(__name__)
    logger.error(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback)
    )


class VacationPlannerApp:
    """Main application class"""

    def __init__(self, data_file: str, period: Optional[Period] = None,
                 max_away: Optional[int] = None):
        self.logger = logging.getLogger(__name__)
        self.data_file = data_file
        self.period = period
        self.max_away = max_away
        self.data_manager = None
        self.planner = None
        self.report_generator = None

    def initialize(self) -> bool:
        """Initialize application components"""
        try:
            self.logger.info("Initializing Vacation Planner")

            self.data_manager = DataManager(self.data_file)
            self.logger.info(f"Data manager initialized with {self.data_manager.data_file}")

            if not self.data_manager.get_employees():
                self.data_manager.seed_default_roster()

            if self.period is not None:
                self.data_manager.set_period(self.period.start, self.period.end)
            if self.max_away is not None:
                self.data_manager.set_max_away(self.max_away)

            self.planner = FairSharePlanner(self.data_manager)
            self.report_generator = ReportGenerator(self.data_manager)
            return True

        except DataManagerError as e:
            self.logger.error(f"Failed to initialize application: {e}")
            self.logger.error(traceback.format_exc())
            return False

    def show_summary(self):
        print(self.report_generator.create_dashboard_summary())

    def show_overview(self):
        overview = self.report_generator.overview()
        print(overview.to_string())
        print()
        print(self.report_generator.away_counts().to_string(index=False))

    def distribute(self, dry_run: bool = False):
        """Fill open weekend shifts in the configured period"""
        if dry_run:
            result = self.planner.propose()
            for proposal in result.proposals:
                employee = self.data_manager.get_employee_by_id(proposal.emp_id)
                print(f"{format_date(proposal.date)}: {employee.name if employee else proposal.emp_id}")
        else:
            result = self.planner.auto_distribute()

        for day in result.skipped_dates:
            print(f"{format_date(day)}: no available employee")
        print(result.message)

    def run(self, command: str, dry_run: bool = False) -> bool:
        """Run a single command"""
        try:
            if not self.initialize():
                return False

            if command == "overview":
                self.show_overview()
            elif command == "distribute":
                self.distribute(dry_run=dry_run)
            else:
                self.show_summary()
            return True

        except DataManagerError as e:
            self.logger.error(f"Application error: {e}")
            self.logger.error(traceback.format_exc())
            return False

        finally:
            self.cleanup(save=not dry_run)

    def cleanup(self, save: bool = True):
        """Persist settings and seeded data; a dry run leaves the data file untouched"""
        try:
            if self.data_manager and save:
                self.data_manager.save_data()
                self.logger.info("Data saved successfully")
        except DataManagerError as e:
            self.logger.error(f"Error during cleanup: {e}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Vacation Planner - vacation wishes and weekend shifts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s summary                           Conflicts, warnings and shift counts
  %(prog)s overview --start 2024-07-01 --end 2024-07-31
  %(prog)s distribute --dry-run              Show proposals, write nothing
        """,
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="summary",
        choices=["summary", "overview", "distribute"],
        help="Command to run (default: summary)",
    )
    parser.add_argument(
        "--data-file", "-f",
        type=str,
        default="data/planner_data.json",
        help="Path of the JSON data file",
    )
    parser.add_argument("--start", type=parse_date, help="Period start (YYYY-MM-DD)")
    parser.add_argument("--end", type=parse_date, help="Period end (YYYY-MM-DD)")
    parser.add_argument(
        "--max-away",
        type=int,
        help="Maximum number of employees on vacation per day",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print proposed assignments, do not write the data file (distribute)",
    )
    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    sys.excepthook = handle_exception

    args = build_parser().parse_args(argv)

    logger = setup_logging()
    logger.info("=" * 50)
    logger.info("Starting Vacation Planner")
    logger.info("=" * 50)

    period = None
    if args.start or args.end:
        if not (args.start and args.end):
            logger.error("Both --start and --end are required to change the period")
            sys.exit(2)
        period = Period(args.start, args.end)

    app = VacationPlannerApp(args.data_file, period=period, max_away=args.max_away)
    success = app.run(args.command, dry_run=args.dry_run)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
