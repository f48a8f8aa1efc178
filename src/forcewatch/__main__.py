from forcewatch.cli import main

main()
