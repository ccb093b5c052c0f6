"""litetable subcommands."""
