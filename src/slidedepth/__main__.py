from slidedepth.cli import main

main()
