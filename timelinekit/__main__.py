from timelinekit.cli import main

main()
