from trellotemplate.cli import main

main()
